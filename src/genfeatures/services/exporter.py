from __future__ import annotations

import io
import zipfile
from typing import Tuple

from ..domain.models import Artifact


def archive_filename(artifact: Artifact) -> str:
    return f"genfeatures-{artifact.id}.zip"


def build_archive(artifact: Artifact) -> Tuple[str, bytes]:
    """Package the artifact's final html as ``index.html`` in a zip archive."""
    mem = io.BytesIO()
    with zipfile.ZipFile(mem, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("index.html", artifact.html)
    return archive_filename(artifact), mem.getvalue()
