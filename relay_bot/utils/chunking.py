from __future__ import annotations

DEFAULT_CHUNK_SIZE = 1500


def _split_words(line: str, max_length: int, chunks: list[str]) -> str:
    """Pack the words of an oversized line; returns the unflushed tail."""
    current = ""
    for word in line.split(" "):
        candidate = current + (" " if current else "") + word
        if len(candidate) > max_length:
            if current:
                chunks.append(current.strip())
            # words are never broken, even when one alone is too long
            current = word
        else:
            current = candidate
    return current


def split_into_chunks(text: str, max_length: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """Split ``text`` into pieces of at most ``max_length`` characters.

    Lines are packed first; a line that cannot fit on its own is packed word by
    word. A single word longer than ``max_length`` is emitted as its own chunk.
    Every chunk is stripped of surrounding whitespace.
    """
    if not text:
        return []

    chunks: list[str] = []
    current = ""

    for line in text.split("\n"):
        if len(current + ("\n" if current else "") + line) <= max_length:
            current += ("\n" if current else "") + line
            continue

        if current:
            chunks.append(current.strip())
            current = ""

        if len(line) > max_length:
            current = _split_words(line, max_length, chunks)
        else:
            current = line

    if current:
        chunks.append(current.strip())

    return chunks


__all__ = ["split_into_chunks", "DEFAULT_CHUNK_SIZE"]
