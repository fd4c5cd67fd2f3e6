from flipbook.config.settings import Settings
from flipbook.database.connection import close_pool, init_pool, init_schema
from flipbook.logging.logger import Log
from flipbook.service.container import build_services
from flipbook.worker.cleanup import CleanupScheduler


def main() -> None:
    """Entry point: initialize pool -> build services -> start cleanup -> worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        init_schema()
        services = build_services(settings)
        scheduler = CleanupScheduler(services.cleanup, settings.cleanup_interval_seconds)
        scheduler.start()
        try:
            services.worker.run()
        finally:
            scheduler.stop()
            services.close()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
