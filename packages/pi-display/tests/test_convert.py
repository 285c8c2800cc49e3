"""Tests for pi.display.convert -- external conversion processes."""

from __future__ import annotations

import asyncio
import logging
import shutil

import pytest

from pi.display.convert import ExternalConverter, pandoc_args
from pi.display.errors import ConversionError

needs_cat = pytest.mark.skipif(shutil.which("cat") is None, reason="cat not available")
needs_false = pytest.mark.skipif(shutil.which("false") is None, reason="false not available")


def _no_args(source_format: str, target_format: str) -> list[str]:
    return []


def test_pandoc_args():
    assert pandoc_args("markdown", "html") == ["-f", "markdown", "-t", "html"]
    assert ExternalConverter().program == "pandoc"


def test_available():
    assert not ExternalConverter("pi-display-no-such-converter").available()


@needs_cat
@pytest.mark.asyncio
async def test_convert_async():
    converter = ExternalConverter("cat", _no_args)
    assert await converter.convert_async("a", "b", "héllo\n") == "héllo\n"


@needs_false
@pytest.mark.asyncio
async def test_convert_async_failure():
    converter = ExternalConverter("false", _no_args)
    with pytest.raises(ConversionError) as excinfo:
        await converter.convert_async("a", "b", "x")
    assert excinfo.value.exit_code != 0
    assert excinfo.value.program == "false"


@needs_cat
def test_convert_blocking():
    converter = ExternalConverter("cat", _no_args)
    assert converter.convert("a", "b", "text") == "text"


@needs_cat
@pytest.mark.asyncio
async def test_convert_with_callback():
    converter = ExternalConverter("cat", _no_args)
    results: list[str] = []
    task = converter.convert("a", "b", "chunk", callback=results.append)
    await asyncio.wait([task])
    await asyncio.sleep(0)
    assert results == ["chunk"]


@needs_false
@pytest.mark.asyncio
async def test_callback_not_called_on_failure(caplog):
    converter = ExternalConverter("false", _no_args)
    results: list[str] = []
    with caplog.at_level(logging.ERROR, logger="pi.display.convert"):
        task = converter.convert("a", "b", "x", callback=results.append)
        await asyncio.wait([task])
        await asyncio.sleep(0)
    assert results == []
    assert "Conversion from a to b failed" in caplog.text
