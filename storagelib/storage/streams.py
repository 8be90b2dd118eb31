"""Helpers for reading SDK download streams into memory."""

from typing import Any, AsyncIterable, List, Union


async def stream_to_string(stream: Any, encoding: str = "utf-8") -> str:
    """
    Read a download stream to the end and join it into one string.

    Args:
        stream: An aio ``StorageStreamDownloader`` (read through its ``chunks()``
            iterator) or any async iterable yielding bytes or str chunks
        encoding: Text encoding of byte chunks

    Returns:
        The complete content of the stream
    """
    source: AsyncIterable[Union[bytes, str]] = stream.chunks() if hasattr(stream, "chunks") else stream

    chunks: List[bytes] = []
    async for chunk in source:
        if isinstance(chunk, str):
            chunk = chunk.encode(encoding)
        chunks.append(chunk)

    # Decode once so multi-byte characters split across chunks survive
    return b"".join(chunks).decode(encoding)
