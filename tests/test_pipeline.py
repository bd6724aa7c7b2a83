"""Tests for the shared pipeline, library entry point, evaluation and CLI.

Uses a fake provider throughout; no API keys or network needed.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from pagechat import cli
from pagechat.api.schemas import ChatResponse, Citation
from pagechat.config import Settings
from pagechat.errors import InvalidRequestError, MissingCredentialsError
from pagechat.eval.evaluate import EVAL_CASES, run_evaluation
from pagechat.pipeline import RagPipeline
from pagechat.provider import Provider, build_provider


def _mock_chat_response(content: str):
    msg = MagicMock()
    msg.content = content
    choice = MagicMock()
    choice.message = msg
    resp = MagicMock()
    resp.choices = [choice]
    return resp


def _pipeline(answer="Founded in 2019 [chunk_0].", **settings):
    chat = MagicMock()
    chat.chat.completions.create = AsyncMock(return_value=_mock_chat_response(answer))
    reranker = MagicMock()
    reranker.rerank = AsyncMock(return_value=[])
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404)))
    provider = Provider(chat=chat, reranker=reranker, http=http)
    return RagPipeline(provider, Settings(_env_file=None, cohere_api_key="k", **settings))


# ── RagPipeline ─────────────────────────────────────────────────

class TestRagPipeline:
    def test_text_flow(self):
        pipeline = _pipeline()
        resp = asyncio.run(pipeline.run(text="Cohere was founded in 2019.", query=" When? "))
        assert resp.answer == "Founded in 2019 [chunk_0]."
        assert resp.sources == ["Cohere was founded in 2019."]
        assert resp.citations == [Citation(text="Founded in 2019.", document_ids=["chunk_0"])]
        user = pipeline.provider.chat.chat.completions.create.call_args.kwargs["messages"][1]
        assert user["content"] == "When?"

    def test_chunk_size_setting_used(self):
        pipeline = _pipeline(chunk_size=10)
        pipeline.provider.reranker.rerank.return_value = []
        asyncio.run(pipeline.run(text="0123456789abcdefghij", query="q"))
        args = pipeline.provider.reranker.rerank.call_args.args
        assert list(args[1]) == ["0123456789", "abcdefghij"]

    def test_model_and_temperature_from_settings(self):
        pipeline = _pipeline(chat_model="command-a-03-2025", chat_temperature=0.1)
        asyncio.run(pipeline.run(text="t", query="q"))
        kwargs = pipeline.provider.chat.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "command-a-03-2025"
        assert kwargs["temperature"] == 0.1

    def test_unreachable_url_falls_back(self):
        pipeline = _pipeline()
        resp = asyncio.run(pipeline.run(url="https://example.com/missing", query="q"))
        assert "https://example.com/missing" in resp.sources[0]

    def test_invalid_input_raises(self):
        with pytest.raises(InvalidRequestError):
            asyncio.run(_pipeline().run(query="q"))

    def test_empty_text_raises(self):
        with pytest.raises(InvalidRequestError, match="No content"):
            asyncio.run(_pipeline().run(text="\n\t", query="q"))


# ── library entry point ─────────────────────────────────────────

class TestLibraryEntryPoint:
    def test_missing_key_is_fatal(self, monkeypatch):
        monkeypatch.delenv("COHERE_API_KEY", raising=False)
        with pytest.raises(MissingCredentialsError):
            RagPipeline.from_settings(Settings(_env_file=None, cohere_api_key=None))

    def test_build_provider_configures_clients(self):
        settings = Settings(_env_file=None, cohere_api_key="secret", provider_timeout=5.0, provider_max_retries=1)
        provider = build_provider(settings)
        try:
            assert provider.chat.api_key == "secret"
            assert str(provider.chat.base_url).startswith("https://api.cohere.ai/compatibility/v1")
            assert provider.chat.max_retries == 1
            assert provider.reranker.model == "rerank-english-v3.0"
            assert provider.reranker.timeout == 5.0
            assert provider.reranker.client is provider.http
        finally:
            asyncio.run(provider.aclose())


# ── run_evaluation ──────────────────────────────────────────────

class TestRunEvaluation:
    def test_writes_report(self, tmp_path):
        out = tmp_path / "reports" / "eval.csv"
        pipeline = _pipeline(answer="Cohere was founded in 2019 [chunk_0].")
        cases = [EVAL_CASES[0], {"query": "broken"}]
        df = asyncio.run(run_evaluation(pipeline, cases=cases, output_path=str(out)))

        assert out.exists()
        assert list(df["keyword_match"]) == [True, False]
        assert df.loc[0, "citation_coverage"] == 1.0
        assert df.loc[1, "error"]

    def test_default_cases_start_with_founding_date(self):
        assert EVAL_CASES[0]["query"] == "When was Cohere founded?"
        assert EVAL_CASES[0]["expected_keywords"] == ["2019"]


# ── CLI ─────────────────────────────────────────────────────────

class TestCli:
    def test_ask_requires_a_source(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["ask", "--query", "q"])

    def test_ask_sources_are_exclusive(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["ask", "--url", "u", "--text", "t", "--query", "q"])

    def test_ask_prints_answer(self, capsys):
        pipeline = MagicMock()
        pipeline.run = AsyncMock(return_value=ChatResponse(
            answer="Founded in 2019 [chunk_0].",
            citations=[Citation(text="Founded in 2019.", document_ids=["chunk_0"])],
            sources=["Cohere was founded in 2019."],
        ))
        pipeline.aclose = AsyncMock()
        with patch.object(cli.RagPipeline, "from_settings", return_value=pipeline):
            code = cli.main(["ask", "--text", "Cohere was founded in 2019.", "--query", "When?"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Founded in 2019 [chunk_0]." in out
        assert "chunk_0" in out
        pipeline.run.assert_awaited_once_with(url=None, text="Cohere was founded in 2019.", query="When?")
        pipeline.aclose.assert_awaited_once()

    def test_ask_json_uses_camel_case(self, capsys):
        pipeline = MagicMock()
        pipeline.run = AsyncMock(return_value=ChatResponse(
            answer="a", citations=[Citation(text="a", document_ids=["chunk_0"])], sources=["s"],
        ))
        pipeline.aclose = AsyncMock()
        with patch.object(cli.RagPipeline, "from_settings", return_value=pipeline):
            cli.main(["ask", "--url", "https://example.com", "--query", "q", "--json"])
        assert '"documentIds"' in capsys.readouterr().out

    def test_ask_reads_file(self, tmp_path, capsys):
        doc = tmp_path / "doc.txt"
        doc.write_text("Text from a file.")
        pipeline = MagicMock()
        pipeline.run = AsyncMock(return_value=ChatResponse(answer="a", citations=[], sources=["s"]))
        pipeline.aclose = AsyncMock()
        with patch.object(cli.RagPipeline, "from_settings", return_value=pipeline):
            cli.main(["ask", "--file", str(doc), "--query", "q"])
        assert pipeline.run.call_args.kwargs["text"] == "Text from a file."

    def test_missing_key_exits_nonzero(self, capsys):
        with patch.object(cli.RagPipeline, "from_settings", side_effect=MissingCredentialsError()):
            code = cli.main(["ask", "--text", "t", "--query", "q"])
        assert code == 1
        assert "COHERE_API_KEY" in capsys.readouterr().err

    def test_ping(self, capsys):
        pipeline = MagicMock()
        pipeline.provider.chat.chat.completions.create = AsyncMock(return_value=_mock_chat_response("Yes!"))
        pipeline.aclose = AsyncMock()
        with patch.object(cli.RagPipeline, "from_settings", return_value=pipeline):
            code = cli.main(["ping"])
        assert code == 0
        assert "Yes!" in capsys.readouterr().out
