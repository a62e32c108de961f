# pyre-unsafe
import logging


def setup(level: int = logging.DEBUG) -> None:
    logging.basicConfig(
        format="%(asctime)s %(levelname)s: %(message)s", level=level
    )
