from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..models.sort_order import SortOrder

@dataclass
class ReplaceConfig:
    """Configuration for the replace command."""
    # Required arguments
    input_path: Path
    output_path: Path
    rg_id: str
    rg_library: str
    rg_platform: str
    rg_platform_unit: str
    rg_sample: str

    # Optional read group fields
    rg_center: Optional[str] = None
    rg_description: Optional[str] = None
    rg_run_date: Optional[str] = None
    rg_key_sequence: Optional[str] = None
    rg_flow_order: Optional[str] = None
    rg_insert_size: Optional[int] = None
    rg_program_group: Optional[str] = None
    rg_platform_model: Optional[str] = None

    # Optional arguments
    sort_order: Optional[SortOrder] = None  # None keeps the input order
    max_records_in_ram: int = 500_000
    tmp_dir: Optional[Path] = None
    reference: Optional[Path] = None
    log_dir: Optional[Path] = None  # output directory/logs if not specified
    debug: bool = False
    console_output: bool = False

    @classmethod
    def from_args(cls, args):
        """Create ReplaceConfig instance from parsed command line arguments."""
        output_path = Path(args.output)
        return cls(
            input_path=Path(args.input),
            output_path=output_path,
            rg_id=args.rg_id,
            rg_library=args.rg_lb,
            rg_platform=args.rg_pl,
            rg_platform_unit=args.rg_pu,
            rg_sample=args.rg_sm,
            rg_center=args.rg_cn,
            rg_description=args.rg_ds,
            rg_run_date=args.rg_dt,
            rg_key_sequence=args.rg_ks,
            rg_flow_order=args.rg_fo,
            rg_insert_size=args.rg_pi,
            rg_program_group=args.rg_pg,
            rg_platform_model=args.rg_pm,
            sort_order=SortOrder.parse(args.sort_order),
            max_records_in_ram=args.max_records_in_ram,
            tmp_dir=Path(args.tmp_dir) if args.tmp_dir else None,
            reference=Path(args.reference) if args.reference else None,
            log_dir=Path(args.logging) if args.logging else output_path.parent / 'logs',
            debug=args.debug,
            console_output=args.console_output
        )

    def read_group_fields(self) -> Dict[str, Any]:
        """Keyword arguments for ReadGroupDescriptor.create; unset optional fields are left out."""
        values = {
            'identifier': self.rg_id,
            'library': self.rg_library,
            'platform': self.rg_platform,
            'platform_unit': self.rg_platform_unit,
            'sample': self.rg_sample,
            'sequencing_center': self.rg_center,
            'description': self.rg_description,
            'run_date': self.rg_run_date,
            'key_sequence': self.rg_key_sequence,
            'flow_order': self.rg_flow_order,
            'predicted_insert_size': self.rg_insert_size,
            'program_group': self.rg_program_group,
            'platform_model': self.rg_platform_model,
        }
        return {name: value for name, value in values.items() if value is not None}
