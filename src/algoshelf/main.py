"""Application entry point for AlgoShelf backend server."""

from algoshelf.app import App
from algoshelf.config import Config
from algoshelf.logging import setup_logging
from algoshelf.web.runner import run_server


def main() -> None:
    config = Config()  # type: ignore[call-arg]
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
