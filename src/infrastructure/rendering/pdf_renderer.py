"""
Adapter: PDF Certificate Renderer

Writes a single-page A4 PDF (fpdf2) with the certificate data, the
verification hash and the public validation URL.

Text is set in embedded TrueType fonts (bundled Lato, then configured
fallbacks, then bundled Source Code Pro), so owner names keep their accents.
Characters no font covers are logged before rendering.
"""

import logging
from pathlib import Path

from fontTools.ttLib import TTFont
from fpdf import FPDF
from fpdf.enums import XPos, YPos

from src.core.interfaces.certificate_renderer import CertificatePayload, ICertificateRenderer

logger = logging.getLogger(__name__)

FONTS_DIR = Path(__file__).parent / "fonts"
DEFAULT_FONT = FONTS_DIR / "Lato-Regular.ttf"
BUNDLED_FALLBACKS = [FONTS_DIR / "SourceCodePro-Regular.ttf"]
FONT_FAMILY = "CertificateSans"


def font_coverage(path: str | Path) -> set[int]:
    """Codepoints mapped by the font's best cmap."""
    font = TTFont(str(path), lazy=True)
    try:
        return set(font.getBestCmap() or {})
    finally:
        font.close()


class PdfCertificateRenderer(ICertificateRenderer):
    """Renderiza o certificado como PDF de uma página."""

    content_type = "application/pdf"

    def __init__(
        self,
        title: str = "Business Owner Verification Certificate",
        font_path: str | Path | None = None,
        fallback_font_paths: list[str | Path] | None = None,
    ):
        self._title = title
        self._font_path = Path(font_path) if font_path else DEFAULT_FONT
        self._fallbacks = [Path(p) for p in fallback_font_paths or []] + BUNDLED_FALLBACKS
        self._coverage = font_coverage(self._font_path)
        for path in self._fallbacks:
            self._coverage |= font_coverage(path)

    def lines(self, payload: CertificatePayload) -> list[tuple[int, str]]:
        """(font size, text) rows, top to bottom."""
        return [
            (20, self._title),
            (12, ""),
            (12, f"Certificate number: {payload.certificate_number}"),
            (12, f"Business owner: {payload.owner_name}"),
            (12, f"Verified at: {payload.verified_at.strftime('%Y-%m-%d %H:%M UTC')}"),
            (12, f"Valid until: {payload.expires_at.strftime('%Y-%m-%d')}"),
            (12, f"Verification id: {payload.verification_id}"),
            (12, ""),
            (9, "Verification hash:"),
            (9, payload.verification_hash),
            (9, f"Validate at: {payload.validation_url}"),
        ]

    def missing_glyphs(self, text: str) -> list[str]:
        """Characters of `text` that no configured font can draw."""
        return sorted({ch for ch in text if not ch.isspace() and ord(ch) not in self._coverage})

    def _new_document(self) -> FPDF:
        pdf = FPDF(format="A4")
        pdf.set_title(self._title)
        pdf.set_creator("owner-verification")
        pdf.add_font(FONT_FAMILY, fname=str(self._font_path))
        fallback_families = []
        for index, path in enumerate(self._fallbacks):
            family = f"{FONT_FAMILY}Fallback{index}"
            pdf.add_font(family, fname=str(path))
            fallback_families.append(family)
        if fallback_families:
            pdf.set_fallback_fonts(fallback_families)
        return pdf

    def render(self, payload: CertificatePayload) -> bytes:
        rows = self.lines(payload)
        missing = self.missing_glyphs("".join(text for _, text in rows))
        if missing:
            logger.warning(
                f"Certificate {payload.certificate_number}: no configured font covers "
                f"{''.join(missing)!r}; configure a fallback font for this script"
            )

        pdf = self._new_document()
        pdf.add_page()
        for size, text in rows:
            pdf.set_font(FONT_FAMILY, size=size)
            pdf.multi_cell(0, size * 0.6, text, new_x=XPos.LMARGIN, new_y=YPos.NEXT)

        out = bytes(pdf.output())
        logger.debug(f"Rendered certificate {payload.certificate_number} ({len(out)} bytes)")
        return out
