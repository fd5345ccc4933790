"""
Opus packet extraction for ffmpeg's `-f opus` output.

Page parsing and packet reassembly are discord.py's `oggparse.OggStream`; this
module only normalises its errors and drops the Opus header packets.
"""

from __future__ import annotations

import struct
from typing import BinaryIO, Iterator

from discord.oggparse import OggError, OggStream

from .errors import OggFormatError

OPUS_HEADER_MAGICS = (b"OpusHead", b"OpusTags")


def iter_packets(stream: BinaryIO) -> Iterator[bytes]:
    """Yield every packet in the stream, header packets included."""
    packets = OggStream(stream).iter_packets()
    while True:
        try:
            packet = next(packets)
        except StopIteration:
            return
        except (OggError, struct.error) as e:
            # struct.error means a page header or segment table was cut short
            raise OggFormatError(f"Malformed Ogg stream: {e}") from e
        yield packet


def iter_opus_packets(stream: BinaryIO) -> Iterator[bytes]:
    """Yield Opus audio packets, skipping the OpusHead and OpusTags headers."""
    for packet in iter_packets(stream):
        if not packet or packet.startswith(OPUS_HEADER_MAGICS):
            continue
        yield packet
