"""Minecraft Java edition Server List Ping.

Handshake (next state = status) followed by a status request; the server
answers with one length-prefixed packet carrying a JSON document.
"""
import asyncio
import contextlib
import json
import struct

from gameservers.services.query.base import GameQueryDriver, Online, QueryError, to_int

PROTOCOL_VERSION = 47
STATE_STATUS = 1
MAX_RESPONSE_BYTES = 1 << 20


def pack_varint(value: int) -> bytes:
    value &= 0xFFFFFFFF
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def pack_string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return pack_varint(len(raw)) + raw


def pack_packet(packet_id: int, payload: bytes = b"") -> bytes:
    body = pack_varint(packet_id) + payload
    return pack_varint(len(body)) + body


def unpack_varint(buf: bytes, offset: int = 0):
    """Return ``(value, next_offset)``."""
    value = 0
    for shift in range(0, 35, 7):
        if offset >= len(buf):
            raise QueryError("truncated varint")
        byte = buf[offset]
        offset += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, offset
    raise QueryError("varint too long")


async def read_varint(reader: asyncio.StreamReader) -> int:
    value = 0
    for shift in range(0, 35, 7):
        byte = (await reader.readexactly(1))[0]
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value
    raise QueryError("varint too long")


def parse_status(payload: bytes) -> Online:
    packet_id, offset = unpack_varint(payload)
    if packet_id != 0x00:
        raise QueryError(f"unexpected packet id {packet_id:#x}")
    length, offset = unpack_varint(payload, offset)
    raw = payload[offset:offset + length]
    try:
        doc = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise QueryError("malformed status JSON") from exc

    players = doc.get("players") if isinstance(doc, dict) else None
    if not isinstance(players, dict):
        raise QueryError("status has no players block")
    # Minecraft has no notion of a current map
    return Online(
        current_players=to_int(players.get("online")),
        max_players=to_int(players.get("max")),
        current_map=None,
    )


class MinecraftDriver(GameQueryDriver):
    name = "minecraft"

    async def query(self, host: str, port: int, timeout: float) -> Online:
        reader, writer = await asyncio.open_connection(host, port)
        try:
            handshake = (
                pack_varint(PROTOCOL_VERSION)
                + pack_string(host)
                + struct.pack(">H", port)
                + pack_varint(STATE_STATUS)
            )
            writer.write(pack_packet(0x00, handshake))
            writer.write(pack_packet(0x00))
            await writer.drain()

            length = await read_varint(reader)
            if length <= 0 or length > MAX_RESPONSE_BYTES:
                raise QueryError(f"bad response length {length}")
            payload = await reader.readexactly(length)
        finally:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()
        return parse_status(payload)
