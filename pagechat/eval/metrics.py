from typing import List, Sequence

from pagechat.api.schemas import Citation


def calculate_citation_coverage(citations: List[Citation], num_sources: int) -> float:
    # Share of the documents sent to the model that at least one citation points at.
    if num_sources <= 0:
        return 0.0

    cited = {doc_id for c in citations for doc_id in c.document_ids}
    sent = {f"chunk_{i}" for i in range(num_sources)}
    return len(cited & sent) / num_sources


def keyword_match(answer: str, expected_keywords: Sequence[str]) -> bool:
    answer_lower = answer.lower()
    return all(k.lower() in answer_lower for k in expected_keywords)
