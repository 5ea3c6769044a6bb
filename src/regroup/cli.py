#!/usr/bin/env python3
import argparse
import sys
from rich_argparse import RawDescriptionRichHelpFormatter

from regroup.commands import run_replace
from regroup.errors import RegroupError, ValidationError
from regroup.models.sort_order import SortOrder
from regroup.utils import ReplaceConfig, setup_file_logging

SORT_ORDER_CHOICES = [order.value for order in SortOrder] + ['unspecified']


def display_ascii():
        print("""
              ┌─┐ ┌─┐ ┌─┐
              │@│→│R│→│G│   \033[1mregroup\033[0m
              └─┘ └─┘ └─┘

        \033[3massign every read to a single new read group\033[0m
        """)

class RegroupArgumentParser(argparse.ArgumentParser):
    """Custom argument parser that shows program-specific help on error."""

    def error(self, message):
        """Upon error, prints help message and error."""
        display_ascii()
        self.print_help()
        self.exit(2, f'\n\033[31mERROR\033[0m: {message}\n')

def non_negative_int(value):
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {value}")
    return number

def positive_int(value):
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return number

def build_parser():
    parser = RegroupArgumentParser(
        formatter_class=RawDescriptionRichHelpFormatter,
        epilog="""
    - regroup replace: assign all reads in a SAM/BAM/CRAM file to a single new read group.

    View inputs & arguments for each command with regroup {command} --help.
        """
    )
    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # regroup replace
    replace_parser = subparsers.add_parser('replace',
        help='Add (if missing) or replace the read groups of an alignment file with a new one',
        description='Assign every read in the input to a single new read group. '
                    'Existing read groups are discarded; if the input has several, the original RG values are lost.',
        formatter_class=parser.formatter_class,
        epilog="""
Examples:
regroup replace --input input.bam --output output.bam --rg-id 4 --rg-lb lib1 --rg-pl illumina --rg-pu unit1 --rg-sm 20
regroup replace -i input.bam -o output.bam --rg-id 4 --rg-lb lib1 --rg-pl illumina --rg-pu unit1 --rg-sm 20 --sort-order coordinate

Header values must match the regex '^[ -~]+$'; <Space> is the only non-printing character allowed.
        """)
    replace_parser.add_argument("--input", "-i", required=True,
                                help="Input SAM/BAM/CRAM file (required)")
    replace_parser.add_argument("--output", "-o", required=True,
                                help="Output file; .bam, .cram or SAM otherwise (required)")
    replace_parser.add_argument("--sort-order", "-s", choices=SORT_ORDER_CHOICES, default=None,
                                help="Sort order to output in (default: same order as input)")

    read_group = replace_parser.add_argument_group('read group')
    read_group.add_argument("--rg-id", required=True, help="Read group ID (required)")
    read_group.add_argument("--rg-lb", required=True, help="Read group library (required)")
    read_group.add_argument("--rg-pl", required=True, help="Read group platform, e.g. illumina, solid (required)")
    read_group.add_argument("--rg-pu", required=True, help="Read group platform unit, e.g. run barcode (required)")
    read_group.add_argument("--rg-sm", required=True, help="Read group sample name (required)")
    read_group.add_argument("--rg-cn", help="Read group sequencing center name")
    read_group.add_argument("--rg-ds", help="Read group description")
    read_group.add_argument("--rg-dt", help="Read group run date (ISO 8601)")
    read_group.add_argument("--rg-ks", help="Read group key sequence")
    read_group.add_argument("--rg-fo", help="Read group flow order")
    read_group.add_argument("--rg-pi", type=non_negative_int, help="Read group predicted insert size")
    read_group.add_argument("--rg-pg", help="Read group program group")
    read_group.add_argument("--rg-pm", help="Read group platform model")

    replace_parser.add_argument("--max-records-in-ram", type=positive_int, default=500_000,
                                help="Records held in memory before spilling a sorted run to disk (default: 500000)")
    replace_parser.add_argument("--tmp-dir",
                                help="Directory for sorted runs (default: system temp directory)")
    replace_parser.add_argument("--reference", "-R",
                                help="Reference FASTA, needed for CRAM input or output")
    replace_parser.add_argument("--logging",
                                help="Log directory (default: <output dir>/logs)")
    replace_parser.add_argument("--debug", action="store_true",
                                help="Enable debug logging")
    replace_parser.add_argument("--console-output", action="store_true",
                                help="Enable logging to console (default: False)")
    return parser

def parse_args(argv=None):
    """Parse command line arguments."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        display_ascii()
        parser.print_help()
        sys.exit(0)
    return args

def main(argv=None):
    args = parse_args(argv)

    if args.command == 'replace':
        config = ReplaceConfig.from_args(args)
        logger = setup_file_logging(config.log_dir, 'replace', config.debug, config.console_output)
        try:
            run_replace(config, logger)
        except ValidationError as e:
            for message in e.errors:
                logger.error(message)
            print('\033[31mERROR\033[0m: invalid read group:\n' + '\n'.join(e.errors), file=sys.stderr)
            sys.exit(1)
        except RegroupError as e:
            logger.error(str(e))
            print(f'\033[31mERROR\033[0m: {e}', file=sys.stderr)
            sys.exit(1)

if __name__ == "__main__":
    main()
