# pyre-strict
import argparse

from orthosfm.actions import filter_matches
from orthosfm.dataset_base import DataSetBase

from . import command


class Command(command.CommandBase):
    name = "filter_matches"
    help = "Keep the matches consistent with an orthographic essential matrix"

    def run_impl(self, data: DataSetBase, args: argparse.Namespace) -> None:
        filter_matches.run_dataset(data)
