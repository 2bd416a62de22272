from __future__ import annotations

import time
import zipfile
from pathlib import Path
from typing import Optional


def create_debug_bundle(
    *,
    debug_dir: str,
    log_file: Optional[str],
    out_dir: str = ".",
) -> Path:
    """
    Zip up page snapshots + the log file so a failed run can be inspected later.

    The token store is never included.
    """
    out_root = Path(out_dir)
    out_root.mkdir(parents=True, exist_ok=True)

    stamp = time.strftime("%Y%m%d_%H%M%S")
    out_path = out_root / f"gptinvoice_debug_{stamp}.zip"

    dbg = Path(debug_dir)

    def _add_file(z: zipfile.ZipFile, file_path: Path, arcname: str) -> None:
        try:
            if file_path.is_file():
                z.write(file_path, arcname=arcname)
        except OSError:
            # file vanished between listing and zipping
            return

    with zipfile.ZipFile(out_path, "w", compression=zipfile.ZIP_DEFLATED) as z:
        if log_file:
            log = Path(log_file)
            _add_file(z, log, arcname=log.name)

        if dbg.is_dir():
            for p in sorted(dbg.rglob("*")):
                if p.is_file() and p.suffix != ".zip":
                    _add_file(z, p, arcname=str(Path("debug") / p.relative_to(dbg)))

    return out_path
