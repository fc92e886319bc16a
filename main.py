import logging
import os
import uvicorn
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO", log_dir: str = "logs") -> str:
    """
    Console + arquivo com rotação (10MB por arquivo, 5 backups).
    Retorna o caminho do arquivo de log.
    """
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, "signup.log")
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # httpx loga cada request em INFO; o JsonApiClient já registra as chamadas
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return log_file


def main() -> None:
    log_file = configure_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        log_dir=os.getenv("LOG_DIR", "logs"),
    )

    # Importado depois do logging para que a carga da configuração já seja registrada
    from referral_signup.api.http import create_app
    from referral_signup.config import AppConfig

    config = AppConfig.load_from_env()
    logging.info(
        f"Cadastro por indicação iniciando: env={config.env}, api={config.api_base_url}, "
        f"redis={'sim' if config.redis_url else 'não'}, log_file={log_file}"
    )

    uvicorn.run(
        create_app(config=config),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
