"""Command module for read group replacement."""

from __future__ import annotations

import logging

from regroup.models.read_group import ReadGroupDescriptor
from regroup.processors.alignments import AlignmentSource
from regroup.processors.emitter import EmitSummary, OrderedEmitter
from regroup.utils.config import ReplaceConfig
from regroup.utils.common import ProgressReporter, record_progress


def run_replace(config: ReplaceConfig, logger: logging.Logger) -> EmitSummary:
    """Assign every record of the input to a single new read group.

    The read group is validated before any file is opened, so a bad value
    never leaves an output behind.
    """
    descriptor = ReadGroupDescriptor.create(**config.read_group_fields())
    logger.info(f"Created read group {descriptor}")

    if config.sort_order is not None:
        logger.info(f"Requested output sort order: {config.sort_order.value}")
    else:
        logger.info("No sort order requested, output keeps the input order")

    with record_progress() as progress, \
         AlignmentSource(config.input_path, reference=config.reference) as source:
        reporter = ProgressReporter(logger, progress=progress, description="[cyan]Replacing read groups...")
        emitter = OrderedEmitter(
            source,
            config.output_path,
            descriptor,
            requested_order=config.sort_order,
            max_records_in_ram=config.max_records_in_ram,
            tmp_dir=config.tmp_dir,
            reference=config.reference,
            progress=reporter,
        )
        summary = emitter.run()
        reporter.finish()

    if summary.runs_spilled:
        logger.info(f"External sort used {summary.runs_spilled} spilled runs")
    logger.info("Read group replacement completed successfully")
    print(f"Wrote {summary.records_written} records to {config.output_path}")
    return summary
