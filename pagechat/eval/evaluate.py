import logging
import os
import time
from typing import Dict, List, Optional

import pandas as pd

from pagechat.eval.metrics import calculate_citation_coverage, keyword_match
from pagechat.pipeline import RagPipeline

logger = logging.getLogger(__name__)

COHERE_BLURB = (
    "Cohere is a Canadian multinational technology company focused on artificial intelligence "
    "for the enterprise. The company was founded in 2019 by Aidan Gomez, Ivan Zhang, and Nick Frosst."
)

EVAL_CASES = [
    {"text": COHERE_BLURB, "query": "When was Cohere founded?", "expected_keywords": ["2019"]},
    {"text": COHERE_BLURB, "query": "Who founded Cohere?", "expected_keywords": ["Aidan Gomez", "Nick Frosst"]},
    {"url": "https://www.linkedin.com/in/example", "query": "Summarize this profile.", "expected_keywords": ["LinkedIn"]},
]


async def run_evaluation(
    pipeline: RagPipeline,
    cases: Optional[List[Dict]] = None,
    output_path: str = "reports/eval_results.csv",
) -> pd.DataFrame:
    cases = cases if cases is not None else EVAL_CASES
    logger.info(f"Starting evaluation over {len(cases)} cases")
    results = []

    for case in cases:
        start_t = time.perf_counter()
        error = None
        try:
            response = await pipeline.run(url=case.get("url"), text=case.get("text"), query=case["query"])
            answer, citations, sources = response.answer, response.citations, response.sources
        except Exception as e:
            # One failing case shouldn't sink the report
            logger.error(f"Case {case['query']!r} failed: {e}")
            answer, citations, sources, error = "", [], [], str(e)
        latency = (time.perf_counter() - start_t) * 1000

        results.append({
            "query": case["query"],
            "source": case.get("url") or "text",
            "latency_ms": round(latency, 2),
            "citation_coverage": calculate_citation_coverage(citations, len(sources)),
            "keyword_match": keyword_match(answer, case.get("expected_keywords", [])) if not error else False,
            "answer_length": len(answer),
            "error": error,
        })

    df = pd.DataFrame(results)
    out_dir = os.path.dirname(output_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    df.to_csv(output_path, index=False)
    logger.info(f"Saved evaluation report to {output_path}")
    return df
