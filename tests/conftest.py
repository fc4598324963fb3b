"""Shared test fixtures for blockline."""

from __future__ import annotations

from pathlib import Path

import pytest

from blockline.parser.loader import SourceReader
from blockline.parser.structure import StructuralParser
from blockline.service.handle import DocumentHandle, open_document
from blockline.settings import Settings

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SURVEY_FILE = FIXTURES_DIR / "survey.bl"


@pytest.fixture
def loaded() -> DocumentHandle:
    """SAMPLE_DOCUMENT opened in loaded mode."""
    return open_document(SAMPLE_DOCUMENT, "loaded")


@pytest.fixture
def streaming() -> DocumentHandle:
    """SAMPLE_DOCUMENT opened in streaming mode and scanned."""
    handle = open_document(SAMPLE_DOCUMENT.encode(), "streaming")
    handle.scan()
    return handle


@pytest.fixture(params=["loaded", "streaming"])
def doc(request: pytest.FixtureRequest) -> DocumentHandle:
    """SAMPLE_DOCUMENT in each mode; queries must not depend on which."""
    handle = open_document(SAMPLE_DOCUMENT, request.param)
    if request.param == "streaming":
        handle.scan()
    return handle


def parse_text(text: str, settings: Settings | None = None) -> StructuralParser:
    """Run a loaded-mode parse over ``text`` and return the finished parser."""
    parser = StructuralParser(settings=settings)
    parser.parse(SourceReader(text).lines())
    return parser


def open_both(text: str) -> tuple[DocumentHandle, DocumentHandle]:
    """The same document loaded and scanned."""
    streaming = open_document(text, "streaming")
    streaming.scan()
    return open_document(text, "loaded"), streaming


SAMPLE_DOCUMENT = """\
# Sample export
= version = 0.2
= title = Survey results   # exported nightly
= count = (int) 42
= ratio = (float) 0.75
= enabled = (bool) yes
= missing = (null) null
= broken = (int) forty-two
@ headers   # column headers
: H1 = Exclude
: H2 = (int) 7
@ segments
, & id2
, & id3
@ tags
- alpha
- (int) 1
- & lookup
> types
(address) = (int=0-99) (string=2-10) (string=2.)
< types
@ addresses
, (address) 12, Main, NY
, (address) 150, Main, NY
, plain, & lookup
> id2
@
, H1, mouse
< id2
> lookup
= code = X1
< lookup
"""

SAMPLE_PATHS = [
    "main",
    "main/version",
    "main/title",
    "main/count",
    "main/ratio",
    "main/enabled",
    "main/missing",
    "main/broken",
    "main/headers",
    "main/headers/H1",
    "main/headers/H2",
    "main/segments",
    "main/segments/0",
    "main/segments/0/0",
    "main/segments/0/1",
    "main/segments/1",
    "main/tags",
    "main/tags/0",
    "main/tags/1",
    "main/tags/2",
    "main/tags/2/code",
    "main/addresses",
    "main/addresses/0",
    "main/addresses/0/0",
    "main/addresses/1",
    "main/addresses/1/0",
    "main/addresses/2",
    "main/addresses/2/1",
    "main/addresses/2/1/code",
    "id2",
    "id2/0",
    "lookup",
    "lookup/code",
    "types",
    "nowhere",
    "main/nowhere",
    "main/tags/3",
    "main/version/deeper",
]
