import argparse

from orthosfm import log


def command_runner(all_commands_types, dataset_factory, dataset_choices, args=None):
    """ Main entry point for running the passed commands types."""
    log.setup()

    # Create the top-level parser
    parser = argparse.ArgumentParser()
    subparsers = parser.add_subparsers(
        help="Command to run", dest="command", metavar="command"
    )
    subparsers.required = True

    command_objects = [c.Command() for c in all_commands_types]

    for command in command_objects:
        subparser = subparsers.add_parser(command.name, help=command.help)
        command.add_arguments(subparser)
        subparser.add_argument(
            "--dataset-type",
            type=str,
            required=False,
            default="orthosfm",
            choices=dataset_choices,
        )

    # Parse arguments
    args = parser.parse_args(args)

    # Instanciate dataset and run the selected subcommand
    with dataset_factory(args.dataset, args.dataset_type) as data:
        for command in command_objects:
            if args.command == command.name:
                command.run(data, args)
