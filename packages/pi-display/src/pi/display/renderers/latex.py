"""LaTeX rendering: TeX source with a rendered image laid over it."""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from pi.display.bundle import IMAGE_PNG
from pi.display.document import IMAGE, Document
from pi.display.errors import RenderError
from pi.display.renderers.image import InlineImage, get_png_dimensions
from pi.display.settings import DEFAULT_IMAGE_ASCENT

logger = logging.getLogger(__name__)

# TeX source -> PNG bytes
LatexPipeline = Callable[[str], bytes]

_PREAMBLE = r"""\documentclass{article}
\usepackage{amsmath}
\usepackage{amssymb}
\pagestyle{empty}
\begin{document}
"""


class DvipngPipeline:
    """Render TeX to PNG with ``latex`` and ``dvipng`` in a scratch directory."""

    def __init__(
        self,
        latex_program: str = "latex",
        dvipng_program: str = "dvipng",
        dpi: int = 150,
        timeout: float = 60,
    ) -> None:
        self.latex_program = latex_program
        self.dvipng_program = dvipng_program
        self.dpi = dpi
        self.timeout = timeout

    def available(self) -> bool:
        return shutil.which(self.latex_program) is not None and shutil.which(self.dvipng_program) is not None

    def _run(self, args: list[str], cwd: str) -> None:
        try:
            result = subprocess.run(args, cwd=cwd, capture_output=True, text=True, timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise RenderError(f"{args[0]} failed: {exc}") from exc
        if result.returncode != 0:
            output = (result.stdout or result.stderr).strip().splitlines()
            detail = output[-1] if output else ""
            raise RenderError(f"{args[0]} exited with code {result.returncode}: {detail}")

    def __call__(self, source: str) -> bytes:
        with tempfile.TemporaryDirectory(prefix="pi-latex-") as tmp:
            tex = Path(tmp) / "fragment.tex"
            tex.write_text(f"{_PREAMBLE}{source}\n\\end{{document}}\n", encoding="utf-8")
            self._run(
                [self.latex_program, "-interaction=nonstopmode", "-halt-on-error", tex.name],
                tmp,
            )
            self._run(
                [
                    self.dvipng_program,
                    "-D", str(self.dpi),
                    "-T", "tight",
                    "-bg", "Transparent",
                    "-o", "fragment.png",
                    "fragment.dvi",
                ],
                tmp,
            )
            return (Path(tmp) / "fragment.png").read_bytes()


class LatexRenderer:
    """Strategy for ``text/latex``.

    The source is inserted first and stays in the document; the rendered
    image is attached over it through the ``image`` attribute. If the
    pipeline fails the source text remains without an image.
    """

    def __init__(self, pipeline: LatexPipeline, ascent: int = DEFAULT_IMAGE_ASCENT) -> None:
        self.pipeline = pipeline
        self.ascent = ascent

    def __call__(
        self,
        document: Document,
        mime_type: str,
        content: Any,
        metadata: Mapping[str, Any],
    ) -> bool:
        source = str(content)
        begin, end = document.insert(source)
        png = self.pipeline(source)
        dimensions = get_png_dimensions(png)
        image = InlineImage(
            data=png,
            mime_type=IMAGE_PNG,
            width=dimensions.width_px if dimensions else None,
            height=dimensions.height_px if dimensions else None,
            ascent=self.ascent,
            alt=source,
        )
        document.put(begin, end, IMAGE, image)
        logger.debug("Rendered %d characters of TeX to a %d byte image", len(source), len(png))
        return True
