"""
pagechat command line.

  pagechat ask --url https://example.com --query "What is this page about?"
  pagechat ask --text "..." --query "..." --json
  pagechat ping
  pagechat serve --port 8000
  pagechat eval --output reports/eval_results.csv
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from pagechat.config import get_settings
from pagechat.errors import PagechatError
from pagechat.pipeline import RagPipeline

logger = logging.getLogger("pagechat")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pagechat", description="Ask questions about a web page or text, with citations.")
    sub = parser.add_subparsers(dest="command", required=True)

    ask = sub.add_parser("ask", help="answer a question about a URL or text")
    source = ask.add_mutually_exclusive_group(required=True)
    source.add_argument("--url")
    source.add_argument("--text")
    source.add_argument("--file", help="read the text from a file ('-' for stdin)")
    ask.add_argument("--query", "-q", required=True)
    ask.add_argument("--json", action="store_true", help="print the raw JSON response")

    sub.add_parser("ping", help="check that the chat provider answers")

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    ev = sub.add_parser("eval", help="run the built-in evaluation cases")
    ev.add_argument("--output", default="reports/eval_results.csv")

    return parser


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def print_response(response) -> None:
    print(response.answer)
    if response.citations:
        print("\nCitations:")
        for c in response.citations:
            print(f"  - \"{c.text}\" -> {', '.join(c.document_ids)}")
    print("\nSources:")
    for i, src in enumerate(response.sources):
        preview = src if len(src) <= 200 else src[:200] + "..."
        print(f"  [chunk_{i}] {preview}")


async def _ask(args) -> int:
    text = _read_text(args.file) if args.file else args.text
    pipeline = RagPipeline.from_settings()
    try:
        response = await pipeline.run(url=args.url, text=text, query=args.query)
    finally:
        await pipeline.aclose()

    if args.json:
        print(json.dumps(response.model_dump(by_alias=True), indent=2))
    else:
        print_response(response)
    return 0


async def _ping() -> int:
    settings = get_settings()
    pipeline = RagPipeline.from_settings(settings)
    try:
        print("Testing connection to the chat provider...")
        response = await pipeline.provider.chat.chat.completions.create(
            model=settings.chat_model,
            messages=[{"role": "user", "content": "Hello, are you working?"}],
        )
        print("Success! Response from provider:")
        print(response.choices[0].message.content)
    finally:
        await pipeline.aclose()
    return 0


async def _eval(args) -> int:
    from pagechat.eval.evaluate import run_evaluation

    pipeline = RagPipeline.from_settings()
    try:
        df = await run_evaluation(pipeline, output_path=args.output)
    finally:
        await pipeline.aclose()
    print(df.to_string(index=False))
    print(f"\nSaved to {args.output}")
    return 0 if df["keyword_match"].all() else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=get_settings().log_level)

    if args.command == "serve":
        import uvicorn
        uvicorn.run("pagechat.api.main:app", host=args.host, port=args.port)
        return 0

    try:
        if args.command == "ask":
            return asyncio.run(_ask(args))
        if args.command == "ping":
            return asyncio.run(_ping())
        if args.command == "eval":
            return asyncio.run(_eval(args))
    except PagechatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 2


if __name__ == "__main__":
    sys.exit(main())
