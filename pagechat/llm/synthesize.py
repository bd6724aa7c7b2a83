import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

import openai

from pagechat.api.schemas import Citation
from pagechat.errors import ProviderError
from pagechat.llm.prompt import SYSTEM_PROMPT_TEMPLATE, build_context_str, build_documents
from pagechat.utils.timing import measure_latency

logger = logging.getLogger(__name__)

_marker_re = re.compile(r"\[([^\]]+)\]")
# Markers placed after the full stop ("... 2019. [chunk_0] Next") stay with their sentence.
_sentence_end_re = re.compile(r"(?<=[.!?])((?:\s*\[[^\]]+\])*)(?:\s+|$)")
_doc_id_re = re.compile(r"^chunk_\d+$")


@dataclass
class GeneratedAnswer:
    answer: str
    citations: List[Citation] = field(default_factory=list)


def _ids_in(marker_body: str) -> List[str]:
    # Handles both "[chunk_0]" and "[chunk_0, chunk_1]"
    return [part.strip() for part in marker_body.split(",") if _doc_id_re.match(part.strip())]


def _split_sentences(answer: str) -> List[str]:
    parts = _sentence_end_re.split(answer)
    sentences = [parts[0]]
    for i in range(1, len(parts), 2):
        sentences[-1] += parts[i]
        sentences.append(parts[i + 1])
    return sentences


def extract_citations(answer: str, available_ids: Optional[Iterable[str]] = None) -> List[Citation]:
    """Turn inline `[chunk_i]` markers into one Citation per cited sentence.

    Ids outside `available_ids` are dropped (with a warning); a sentence left
    without any valid id yields no citation.
    """
    available = set(available_ids) if available_ids is not None else None
    citations = []

    for sentence in _split_sentences(answer):
        doc_ids: List[str] = []
        for match in _marker_re.finditer(sentence):
            for doc_id in _ids_in(match.group(1)):
                if available is not None and doc_id not in available:
                    logger.warning(f"Model cited unknown document {doc_id!r}; dropping it")
                    continue
                if doc_id not in doc_ids:
                    doc_ids.append(doc_id)
        if not doc_ids:
            continue

        span = _marker_re.sub(lambda m: "" if _ids_in(m.group(1)) else m.group(0), sentence)
        span = re.sub(r"\s+([.,;:!?])", r"\1", span)
        span = re.sub(r"\s{2,}", " ", span).strip()
        if not span:
            # Markers with no text of their own belong to the previous citation
            if citations:
                prev = citations[-1]
                prev.document_ids.extend(d for d in doc_ids if d not in prev.document_ids)
            continue
        citations.append(Citation(text=span, document_ids=doc_ids))

    return citations


@measure_latency
async def generate_answer(
    query: str,
    chunks: Sequence[str],
    client: openai.AsyncOpenAI,
    model: str,
    temperature: float = 0.3,
) -> GeneratedAnswer:
    """Answer `query` grounded in `chunks`, with citations keyed `chunk_<i>`."""
    documents = build_documents(chunks)
    system_prompt = SYSTEM_PROMPT_TEMPLATE.format(context_str=build_context_str(documents))

    logger.info(f"Generating answer with {model} from {len(documents)} documents")
    try:
        response = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": query},
            ],
            temperature=temperature,
        )
    except openai.OpenAIError as e:
        raise ProviderError(str(e)) from e

    answer = response.choices[0].message.content or ""
    citations = extract_citations(answer, available_ids=[d["id"] for d in documents])
    return GeneratedAnswer(answer=answer, citations=citations)
