from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from presetdb.config import settings
from presetdb.database import PresetsDatabase
from presetdb.errors import FatalLoadError
from presetdb.services.asset_service import FileAssetProvider
from presetdb.telemetry.logging_utils import configure_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Load the preset catalogue and report problems.")
    parser.add_argument("--data-dir", type=Path, default=settings.data_dir)
    parser.add_argument("--language", default=settings.language)
    parser.add_argument("--timeout", type=float, default=120.0, help="seconds to wait for background loads")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging(settings.log_level, settings.perf_log_level, settings.location_log_level)

    try:
        database = PresetsDatabase(FileAssetProvider(args.data_dir), language=args.language)
    except FatalLoadError as exc:
        raise SystemExit(f"Catalogue failed to load: {exc}") from None

    if not database.wait_for_augmentation(args.timeout):
        print(f"Background loads still running after {args.timeout:.0f}s.")

    snapshot = database.snapshot
    print(f"Language: {database.language}")
    print(f"Base presets: {len(snapshot.base)}")
    print(f"Supplementary presets: {len(snapshot.supplementary)}")
    print(f"Regions: {len(snapshot.regions)}")
    for task, state in sorted(database.augmentation.status.items()):
        print(f"  {task}: {state}")

    bad_fields = database.registry.verify_fields()
    if bad_fields:
        print(f"Malformed fields ({len(bad_fields)}): {', '.join(sorted(bad_fields))}")
        raise SystemExit(1)
    print("All fields readable.")


if __name__ == "__main__":
    main()
