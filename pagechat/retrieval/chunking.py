from typing import List

DEFAULT_CHUNK_SIZE = 1000


def chunk_text(text: str, size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
    """Split `text` into consecutive, non-overlapping slices of `size` characters.

    Splits may land mid-word. Always returns at least one chunk, so empty
    input gives `[""]`.
    """
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")

    chunks = [text[i:i + size] for i in range(0, len(text), size)]
    if not chunks:
        chunks = [text]
    return chunks
