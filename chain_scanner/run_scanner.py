import asyncio
import logging
import signal
from dotenv import load_dotenv

load_dotenv()

from . import config

# Logging settings
if config.APP_ENV == 'prod':
    log_level = logging.WARNING # Only WARNING and ERROR
    log_level_name = 'WARNING'
else:
    # dev
    log_level = logging.INFO # INFO, WARNING, ERROR
    log_level_name = 'INFO'
logging.basicConfig(level=log_level, filename=config.LOG_FILE,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)
logger.info(f"Logging level set to {log_level_name} based on APP_ENV='{config.APP_ENV}'")

from . import services


def handle_shutdown(sig):
    """Обработчик сигналов (Ctrl+C) для корректного завершения."""
    logger.info(f"Received signal {sig}. Initiating graceful shutdown...")
    services.scanner.stop()


async def main():
    """
    Главная асинхронная функция.
    Запускает сканер и закрывает ресурсы после его остановки.
    """
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_shutdown, sig)

    try:
        await services.scanner.start()
    finally:
        logger.info("Closing node client and database pool...")
        await services.aelf_client.close()
        await services.db_connector.close_pool()
        logger.info("Shutdown complete.")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    finally:
        logger.info("Application stopped.")
