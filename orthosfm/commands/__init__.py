from . import command
from . import filter_matches
from .command_runner import command_runner


orthosfm_commands = [
    filter_matches,
]
