"""Entry point for running genoview as a module: python -m genoview."""

import logging
import sys
from typing import Literal, get_args

from .config import GenoviewConfig
from .server import create_server

Transport = Literal["stdio", "sse", "streamable-http"]
VALID_TRANSPORTS: tuple[str, ...] = get_args(Transport)


def main() -> None:
    """Run the genoview MCP server."""
    try:
        config = GenoviewConfig.from_env()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if config.transport not in VALID_TRANSPORTS:
        print(
            f"Invalid GENOVIEW_TRANSPORT={config.transport!r}. "
            f"Must be one of: {', '.join(VALID_TRANSPORTS)}",
            file=sys.stderr,
        )
        sys.exit(1)

    transport: Transport = config.transport  # type: ignore[assignment]
    server = create_server(config)

    if transport == "stdio":
        server.run(transport="stdio")
    else:
        import anyio
        import uvicorn

        app = server.sse_app() if transport == "sse" else server.streamable_http_app()

        async def _serve() -> None:
            uvi_config = uvicorn.Config(
                app,
                host=config.host,
                port=config.port,
                log_level=config.log_level.lower(),
            )
            uvi_server = uvicorn.Server(uvi_config)
            await uvi_server.serve()

        anyio.run(_serve)


if __name__ == "__main__":
    main()
