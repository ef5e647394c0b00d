import aiohttp

from gameservers.services.query.base import GameQueryDriver, Online, QueryError, to_int


class FiveMDriver(GameQueryDriver):
    """GTA V (FiveM) servers publish their status as JSON over HTTP on the game port."""

    name = "fivem"
    path = "/dynamic.json"

    async def query(self, host: str, port: int, timeout: float) -> Online:
        url = f"http://{host}:{port}{self.path}"
        client_timeout = aiohttp.ClientTimeout(total=timeout)
        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.get(url) as resp:
                if resp.status != 200:
                    raise QueryError(f"unexpected HTTP status {resp.status}")
                data = await resp.json(content_type=None)

        if not isinstance(data, dict):
            raise QueryError("dynamic.json is not an object")
        return Online(
            current_players=to_int(data.get("clients")),
            max_players=to_int(data.get("sv_maxclients")),
            current_map=data.get("mapname") or None,
        )
