import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level_name: str = "INFO") -> None:
    """
    Configure root logging for the service.

    Safe to call more than once (e.g. one app per test); ``force`` replaces
    the handlers installed by a previous call.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)

    # SQL echo is controlled by the engine's ``echo`` flag, keep the
    # sqlalchemy loggers at WARNING otherwise.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
