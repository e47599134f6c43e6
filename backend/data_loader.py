"""
Data Loader
Loads and validates all input data files.
"""

import os
import glob
from pathlib import Path
from typing import Dict, Any, Optional

import pandas as pd

from algorithms import default_pipeline
from parsers import parse_jobs, parse_conditions, parse_placements
from settings import get_data_dir


class DataLoader:
    """Manages loading and validation of all data files."""

    def __init__(self, data_dir: Optional[str] = None, cure_time_unit: str = 'minutes',
                 pipeline=None):
        self.data_dir = Path(data_dir or get_data_dir())
        self.cure_time_unit = cure_time_unit
        self.pipeline = pipeline or default_pipeline()
        self.jobs = []
        self.conditions = []
        self.saved_placements = []
        self.validation_results = {}

    def _find_most_recent_file(self, pattern: str) -> Optional[Path]:
        """
        Find the most recently modified file matching a glob pattern.

        Args:
            pattern: Glob pattern to match (e.g., "Jobs*.xlsx")
                     Also tries underscore variant (e.g., "Production_Conditions*.xlsx")

        Returns:
            Path to most recent matching file, or None if no matches
        """
        # Try both space and underscore variants
        patterns_to_try = [pattern]
        if ' ' in pattern:
            patterns_to_try.append(pattern.replace(' ', '_'))
        elif '_' in pattern:
            patterns_to_try.append(pattern.replace('_', ' '))

        matches = []
        for p in patterns_to_try:
            search_path = self.data_dir / p
            matches.extend(glob.glob(str(search_path)))

        if not matches:
            return None

        # Sort by modification time, newest first
        matches.sort(key=lambda x: os.path.getmtime(x), reverse=True)
        return Path(matches[0])

    def _find_input(self, stem: str) -> Optional[Path]:
        """Newest Excel or CSV file whose name starts with stem."""
        candidates = [self._find_most_recent_file(f"{stem}*.{ext}") for ext in ('xlsx', 'XLSX', 'csv')]
        candidates = [c for c in candidates if c is not None]
        if not candidates:
            return None
        return max(candidates, key=lambda c: os.path.getmtime(c))

    @staticmethod
    def _read_table(filepath: Path) -> pd.DataFrame:
        if filepath.suffix.lower() == '.csv':
            return pd.read_csv(filepath)
        return pd.read_excel(filepath)

    def _resolve(self, filepath: Optional[str], stem: str) -> Optional[Path]:
        if filepath:
            return Path(filepath)
        return self._find_input(stem)

    def load_jobs(self, filepath: Optional[str] = None) -> bool:
        """
        Load pending job cards.

        Args:
            filepath: Optional explicit filepath. If None, finds most recent file.

        Returns:
            True if loaded successfully, False otherwise
        """
        jobs_file = self._resolve(filepath, "Jobs")
        if not jobs_file or not jobs_file.exists():
            print("[ERROR] No Jobs file found!")
            return False

        print(f"  Loading: {jobs_file.name}")
        self.jobs, errors = parse_jobs(self._read_table(jobs_file))
        self.validation_results['jobs'] = {'file': jobs_file.name, 'errors': errors}

        print(f"[OK] Loaded {len(self.jobs)} jobs")
        return True

    def load_conditions(self, filepath: Optional[str] = None) -> bool:
        """
        Load production conditions (item / press / die / cure time / output).

        Args:
            filepath: Optional explicit filepath. If None, finds most recent file.

        Returns:
            True if loaded successfully, False otherwise
        """
        conditions_file = self._resolve(filepath, "Production Conditions")
        if not conditions_file or not conditions_file.exists():
            print("[ERROR] No Production Conditions file found!")
            return False

        print(f"  Loading: {conditions_file.name}")
        self.conditions, errors = parse_conditions(self._read_table(conditions_file),
                                                   cure_time_unit=self.cure_time_unit)
        self.validation_results['conditions'] = {'file': conditions_file.name, 'errors': errors}

        print(f"[OK] Loaded {len(self.conditions)} production conditions")
        return True

    def load_saved_schedule(self, filepath: Optional[str] = None) -> bool:
        """
        Load placements saved by an earlier run (optional).

        Returns:
            True if loaded successfully, False otherwise
        """
        schedule_file = self._resolve(filepath, "Saved Schedule")
        if not schedule_file or not schedule_file.exists():
            print("  No Saved Schedule file found (optional)")
            return False

        print(f"  Loading: {schedule_file.name}")
        self.saved_placements, errors = parse_placements(self._read_table(schedule_file),
                                                         config=self.pipeline)
        self.validation_results['saved_schedule'] = {'file': schedule_file.name, 'errors': errors}

        print(f"[OK] Loaded {len(self.saved_placements)} saved placements")
        return True

    def load_all(self) -> bool:
        """
        Load all data files.

        Returns:
            True if the required files loaded successfully
        """
        print("=" * 70)
        print("LOADING DATA FILES")
        print("=" * 70)
        print(f"[Loader] Data directory: {self.data_dir}")

        try:
            print("\n[1/3] Loading Jobs...")
            if not self.load_jobs():
                return False

            print("\n[2/3] Loading Production Conditions...")
            if not self.load_conditions():
                return False

            print("\n[3/3] Loading Saved Schedule...")
            self.load_saved_schedule()

            print("\nCross-validating data...")
            self._cross_validate()

            return True

        except (OSError, ValueError) as e:
            print(f"\n[ERROR] ERROR loading data: {str(e)}")
            import traceback
            traceback.print_exc()
            return False

    def _cross_validate(self):
        """Cross-validate jobs against production conditions."""

        items_with_conditions = {c.item_code for c in self.conditions if c.is_usable}
        unmatched = sorted({job.item_code for job in self.jobs
                            if job.item_code not in items_with_conditions})

        if unmatched:
            print(f"\n[WARN]  WARNING: {len(unmatched)} item codes in jobs have no usable production condition")
            print(f"   Examples: {unmatched[:5]}")
            self.validation_results['unmatched_items'] = unmatched
        else:
            print("\n[OK] All job item codes have a production condition")

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of loaded data."""

        by_priority = {}
        for job in self.jobs:
            by_priority[job.priority] = by_priority.get(job.priority, 0) + 1

        return {
            'jobs': {
                'total': len(self.jobs),
                'remaining_quantity': sum(job.remaining_quantity for job in self.jobs),
                'by_priority': by_priority,
                'rejected_rows': len(self.validation_results.get('jobs', {}).get('errors', [])),
            },
            'conditions': {
                'total': len(self.conditions),
                'usable': sum(1 for c in self.conditions if c.is_usable),
                'presses': sorted({c.press_no for c in self.conditions}),
                'rejected_rows': len(self.validation_results.get('conditions', {}).get('errors', [])),
            },
            'saved_schedule': {
                'placements': len(self.saved_placements),
                'quantity': sum(p.quantity for p in self.saved_placements),
            },
            'unmatched_items': len(self.validation_results.get('unmatched_items', [])),
        }

    def print_summary(self):
        """Print a formatted summary."""
        summary = self.get_summary()

        print("\n" + "=" * 70)
        print("DATA LOADING SUMMARY")
        print("=" * 70)

        print(f"\n[JOBS] JOBS:")
        print(f"   Total: {summary['jobs']['total']}")
        print(f"   Remaining quantity: {summary['jobs']['remaining_quantity']:g}")
        for priority, count in sorted(summary['jobs']['by_priority'].items()):
            print(f"   {priority}: {count}")
        print(f"   Rejected rows: {summary['jobs']['rejected_rows']}")

        print(f"\n[COND] PRODUCTION CONDITIONS:")
        print(f"   Total: {summary['conditions']['total']}")
        print(f"   Usable: {summary['conditions']['usable']}")
        print(f"   Presses: {summary['conditions']['presses']}")
        print(f"   Rejected rows: {summary['conditions']['rejected_rows']}")
        print(f"   Items without a condition: {summary['unmatched_items']}")

        print(f"\n[SCHED] SAVED SCHEDULE:")
        print(f"   Placements: {summary['saved_schedule']['placements']}")
        print(f"   Quantity: {summary['saved_schedule']['quantity']:g}")

        print("\n" + "=" * 70)


if __name__ == "__main__":
    import sys

    print("Testing Data Loader")
    print()

    loader = DataLoader()

    success = loader.load_all()

    if success:
        loader.print_summary()
        print("\n[OK] All data loaded successfully!")
        sys.exit(0)
    else:
        print("\n[ERROR] Data loading failed")
        sys.exit(1)
