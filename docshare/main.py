from docshare.config.settings import Settings
from docshare.database.connection import apply_schema, close_pool, get_connection, init_pool
from docshare.database.repositories.token_repository import TokenRepository
from docshare.logging.logger import Log
from docshare.worker.sweeper import ExpirySweeper


def main() -> None:
    """Entry point: initialize pool -> ensure schema -> start the expiry sweep loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        with get_connection() as conn:
            apply_schema(conn)
        sweeper = ExpirySweeper(TokenRepository(), settings)
        sweeper.run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
