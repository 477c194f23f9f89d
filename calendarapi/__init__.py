"""calendarapi - aggregates calendar feeds into a filterable view of today's events.

Imports are kept light so the CLI can start without loading the server stack.
"""

from typing import Optional

__version__ = "0.1.0"


def run_server(
    config_path: Optional[str] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    debug: bool = False,
) -> None:
    """Load configuration, set up logging and run the REST server until stopped."""
    import asyncio

    from calendarapi.api.server import serve
    from calendarapi.core.config_manager import ConfigProvider
    from calendarapi.core.logging_config import configure_logging

    configure_logging(debug=debug)
    provider = ConfigProvider.load(config_path)
    configure_logging(provider.config.log_level, debug=debug or provider.config.debug)

    asyncio.run(serve(provider, host=host, port=port))
