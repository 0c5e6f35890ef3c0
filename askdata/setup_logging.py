import logging
import sys

# third-party loggers that drown out request logs at INFO
QUIET = ("transformers", "urllib3", "filelock", "httpx")


def setup_logging(level: str = "INFO"):
    root = logging.getLogger()
    if root.handlers:  # uvicorn --reload imports us twice
        return
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s :: %(message)s"))
    root.addHandler(handler)
    for name in QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)
