import a2s

from gameservers.services.query.base import GameQueryDriver, Online


class SourceDriver(GameQueryDriver):
    """Valve A2S_INFO over UDP (CS2, Rust, Valheim)."""

    name = "a2s"

    def __init__(self, query_port_offset: int = 0):
        # Valheim answers A2S on the game port + 1
        self.query_port_offset = query_port_offset

    async def query(self, host: str, port: int, timeout: float) -> Online:
        info = await a2s.ainfo((host, port + self.query_port_offset), timeout=timeout)
        return Online(
            current_players=info.player_count,
            max_players=info.max_players,
            current_map=info.map_name or None,
        )
