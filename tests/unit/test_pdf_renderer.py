"""Unit tests for PdfCertificateRenderer."""

import io
import logging
from dataclasses import replace
from datetime import datetime, timezone

import pytest
from pypdf import PdfReader

from src.core.interfaces.certificate_renderer import CertificatePayload
from src.infrastructure.rendering.pdf_renderer import (
    BUNDLED_FALLBACKS,
    DEFAULT_FONT,
    PdfCertificateRenderer,
    font_coverage,
)


@pytest.fixture
def payload() -> CertificatePayload:
    return CertificatePayload(
        verification_id="a-1",
        business_owner_id="o-1",
        owner_name="Ana (Souza)",
        certificate_number="PR-BO-2024-123456",
        verified_at=datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
        verified_by="m-1",
        expires_at=datetime(2025, 5, 1, 12, 30, tzinfo=timezone.utc),
        verification_hash="ab" * 32,
        validation_url="https://verify.example.com/verify/" + "ab" * 32,
    )


@pytest.fixture
def renderer() -> PdfCertificateRenderer:
    return PdfCertificateRenderer()


def _text(pdf: bytes) -> str:
    reader = PdfReader(io.BytesIO(pdf))
    return "\n".join(page.extract_text() for page in reader.pages)


class TestPdfRenderer:
    """Tests for the PDF renderer."""

    def test_produces_single_page_pdf(self, renderer, payload) -> None:
        pdf = renderer.render(payload)

        assert pdf.startswith(b"%PDF-")
        assert len(PdfReader(io.BytesIO(pdf)).pages) == 1
        text = _text(pdf)
        assert "PR-BO-2024-123456" in text
        assert "ab" * 32 in text
        assert "Ana (Souza)" in text

    def test_font_is_embedded(self, renderer, payload) -> None:
        pdf = renderer.render(payload)

        assert b"/FontFile2" in pdf

    def test_accented_owner_name_survives(self, renderer, payload) -> None:
        pdf = renderer.render(replace(payload, owner_name="Zoë Łukasz Šimková"))

        assert "Zoë Łukasz Šimková" in _text(pdf)

    def test_uncovered_characters_are_logged(self, renderer, payload, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="src.infrastructure.rendering.pdf_renderer"):
            pdf = renderer.render(replace(payload, owner_name="Zoë Łukasz 王"))

        assert pdf.startswith(b"%PDF-")
        assert any("王" in record.getMessage() for record in caplog.records)

    def test_missing_glyphs(self, renderer) -> None:
        assert renderer.missing_glyphs("Zoë Łukasz") == []
        assert renderer.missing_glyphs("Łukasz 王 Жанна") == ["Ж", "а", "н", "王"]

    def test_lines_include_dates(self, renderer, payload) -> None:
        lines = [text for _, text in renderer.lines(payload)]

        assert "Verified at: 2024-05-01 12:30 UTC" in lines
        assert "Valid until: 2025-05-01" in lines


class TestFontCoverage:
    """Tests for the bundled fonts."""

    def test_default_font_covers_latin_1_and_polish(self) -> None:
        coverage = font_coverage(DEFAULT_FONT)

        assert {ord(ch) for ch in "AzëçñŁąŠ"} <= coverage
        assert ord("王") not in coverage

    def test_bundled_fallback_fills_latin_extended(self, renderer, payload, caplog) -> None:
        assert ord("Č") not in font_coverage(DEFAULT_FONT)
        assert {ord(ch) for ch in "ČěřŐőğş"} <= font_coverage(BUNDLED_FALLBACKS[0])

        with caplog.at_level(logging.WARNING, logger="src.infrastructure.rendering.pdf_renderer"):
            pdf = renderer.render(replace(payload, owner_name="Karel Čapek Őri Yiğit"))

        assert pdf.startswith(b"%PDF-")
        assert renderer.missing_glyphs("Karel Čapek Őri Yiğit") == []
        assert not [r for r in caplog.records if r.name == "src.infrastructure.rendering.pdf_renderer"]
