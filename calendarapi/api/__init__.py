"""REST API surface for calendarapi (aiohttp server and httpx client)."""
