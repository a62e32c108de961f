# pyre-unsafe
"""Run an orthosfm subcommand on a dataset folder.

    orthosfm_main.py filter_matches path/to/dataset
"""
import sys
from os.path import abspath, dirname, join

sys.path.insert(0, abspath(join(dirname(__file__), "..")))

import contextlib
from typing import Generator

from orthosfm import commands
from orthosfm.dataset import DataSet


@contextlib.contextmanager
def dataset_context(path: str, dataset_type: str) -> Generator[DataSet, None, None]:
    data = DataSet(path)
    try:
        yield data
    finally:
        data.clean_up()


if __name__ == "__main__":
    commands.command_runner(
        commands.orthosfm_commands, dataset_context, dataset_choices=["orthosfm"]
    )
