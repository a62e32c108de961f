# pyre-unsafe
import argparse
import logging
from timeit import default_timer as timer

from orthosfm.dataset_base import DataSetBase


logger: logging.Logger = logging.getLogger(__name__)


class CommandBase:
    """Base class of the dataset subcommands.

    Subclasses name the command, add their options in
    add_arguments_impl and do the work in run_impl. The wall time of
    every run is appended to the dataset profile log.
    """

    name = "Undefined command"
    help = "Undefined command help"

    def run(self, data: DataSetBase, args: argparse.Namespace) -> None:
        start = timer()
        self.run_impl(data, args)
        elapsed = timer() - start
        logger.info("{} done in {:.3f} seconds".format(self.name, elapsed))
        data.append_to_profile_log(f"{self.name}: {elapsed}\n")

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("dataset", help="dataset folder to process")
        self.add_arguments_impl(parser)

    def run_impl(self, data: DataSetBase, args: argparse.Namespace) -> None:
        raise NotImplementedError("Command " + self.name + " not implemented")

    def add_arguments_impl(self, parser: argparse.ArgumentParser) -> None:
        pass
