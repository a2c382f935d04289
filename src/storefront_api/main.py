from __future__ import annotations

import sys

import uvicorn

from storefront_api.adapters.inbound.cli import run_cli
from storefront_api.bootstrap import build_usecases
from storefront_api.config import load_settings
from storefront_api.utils.logging import configure_logging


def serve(host: str = "0.0.0.0", port: int = 8000) -> None:
    uvicorn.run(
        "storefront_api.asgi:create_asgi_app",
        factory=True,
        host=host,
        port=port,
        reload=False,
    )


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    if not argv:
        print("usage: storefront-api serve [port] | storefront-api '<scenario json>'")
        return 2

    if argv[0] == "serve":
        serve(port=int(argv[1]) if len(argv) > 1 else 8000)
        return 0

    settings = load_settings()
    configure_logging(settings.log_level, settings.log_format)
    return run_cli(build_usecases(settings), argv[0])


if __name__ == "__main__":
    raise SystemExit(main())
