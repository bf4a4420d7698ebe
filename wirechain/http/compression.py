"""Lazy gzip decompression of response body streams."""

import zlib
from typing import AsyncIterable, AsyncIterator

import httpx


async def gunzip_stream(source: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    """Decompress ``source`` chunk by chunk as the consumer pulls from it.

    Nothing is read from ``source`` until the first chunk is requested.
    Corrupt or truncated input, or bytes left over after the gzip member,
    raise ``httpx.DecodingError``.
    """
    # 16 + MAX_WBITS selects the gzip container, header and CRC included
    decompressor = zlib.decompressobj(16 + zlib.MAX_WBITS)
    async for chunk in source:
        if not chunk:
            continue
        if decompressor.eof:
            raise httpx.DecodingError('gzip finished without exhausting source')
        try:
            data = decompressor.decompress(chunk)
        except zlib.error as exc:
            raise httpx.DecodingError(str(exc)) from exc
        if data:
            yield data
        if decompressor.unused_data:
            raise httpx.DecodingError('gzip finished without exhausting source')

    try:
        data = decompressor.flush()
    except zlib.error as exc:
        raise httpx.DecodingError(str(exc)) from exc
    if data:
        yield data
    if not decompressor.eof:
        raise httpx.DecodingError('gzip stream ended before the end of the compressed data')
