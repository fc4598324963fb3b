"""End-to-end tests over the survey fixture file in both modes."""

from __future__ import annotations

import io
import threading
from datetime import datetime
from pathlib import Path

import pytest

from blockline import ABSENT, DocumentHandle, open_document
from tests.conftest import SURVEY_FILE


@pytest.fixture
def survey_loaded() -> DocumentHandle:
    return open_document(SURVEY_FILE, "loaded")


@pytest.fixture
def survey_streaming() -> DocumentHandle:
    handle = open_document(SURVEY_FILE, "streaming")
    handle.scan()
    return handle


@pytest.fixture(params=["loaded", "streaming"])
def survey(request: pytest.FixtureRequest) -> DocumentHandle:
    handle = open_document(SURVEY_FILE, request.param)
    if request.param == "streaming":
        handle.scan()
    return handle


class TestSurveyDocument:
    def test_top_level_values(self, survey: DocumentHandle) -> None:
        assert survey.get("main/version") == "0.2"
        assert survey.get("main/title", "comment") == "exported nightly"
        assert survey.get("main/generated") == datetime(2024, 3, 1, 2, 0)

    def test_nested_sections(self, survey: DocumentHandle) -> None:
        assert survey.get("main/headers") == {
            "H1": "Exclude",
            "H2": 7,
            "labels": {"short": "Q", "long": "Question"},
        }

    def test_segments(self, survey: DocumentHandle) -> None:
        assert survey.get("main/segments") == [["H1", "mouse"], ABSENT]

    def test_composed_rows(self, survey: DocumentHandle) -> None:
        assert survey.get("main/answers/0") == ["agree", 4]
        assert survey.get("main/answers/0", "type") == "answer"
        (issue,) = survey.meta("main/answers/1").errors
        assert issue.code == "CONSTRAINT_VIOLATION"
        assert issue.field_index == 1
        assert issue.expected == "1-5"
        assert issue.actual == "9"

    def test_mixed_sequence(self, survey: DocumentHandle) -> None:
        assert survey.get("main/sites") == [
            [12, "Main", "NY"],
            {"street": "Harbour Road", "zip": 4021},
        ]
        assert survey.get("main/sites/1/street", "comment") == "relocated in 2023"

    def test_reopened_main(self, survey: DocumentHandle) -> None:
        assert survey.get("main/footer") == "# end of export"
        assert survey.children("main")[-1] == "footer"

    def test_comment_block_ignored(self, survey: DocumentHandle) -> None:
        assert not survey.has("main/including")
        assert not survey.has("comment")

    def test_warnings(self, survey: DocumentHandle) -> None:
        assert [(w.code, w.path) for w in survey.warnings] == [
            ("UNRESOLVED_REFERENCE", "main/segments/1")
        ]


class TestModeEquivalence:
    def test_every_path(
        self, survey_loaded: DocumentHandle, survey_streaming: DocumentHandle
    ) -> None:
        assert survey_loaded.index.paths == survey_streaming.index.paths
        for path in survey_loaded.index.paths:
            assert survey_loaded.get(path) == survey_streaming.get(path), path
            assert survey_loaded.meta(path) == survey_streaming.meta(path), path

    def test_whole_document(
        self, survey_loaded: DocumentHandle, survey_streaming: DocumentHandle
    ) -> None:
        assert survey_loaded.get("main") == survey_streaming.get("main")


class TestFileSources:
    def test_crlf_file(self, tmp_path: Path) -> None:
        path = tmp_path / "crlf.bl"
        path.write_bytes(b"= a = 1\r\n@ s\r\n: k = (int) 2  # note\r\n")
        handle = open_document(path, "streaming")
        handle.scan()
        assert handle.get("main/s/k") == 2
        assert handle.get("main/s/k", "comment") == "note"
        assert handle.get("main/s/k", "span") == (14, 35)

    def test_open_binary_file_object(self) -> None:
        with SURVEY_FILE.open("rb") as stream:
            handle = open_document(stream, "streaming")
            handle.scan()
            assert handle.get("main/segments/0/1") == "mouse"

    def test_streaming_reads_are_bounded(self, tmp_path: Path) -> None:
        path = tmp_path / "big.bl"
        body = "".join(f"= key{i} = value {i}\n" for i in range(2000))
        path.write_text(body, encoding="utf-8")
        handle = open_document(path, "streaming")
        handle.scan()
        reads: list[tuple[int, int]] = []
        original = handle._reader.read_span

        def spy(start: int, end: int) -> str:
            reads.append((start, end))
            return original(start, end)

        handle._reader.read_span = spy  # type: ignore[method-assign]
        assert handle.get("main/key1500") == "value 1500"
        assert len(reads) == 1
        start, end = reads[0]
        assert end - start == len("= key1500 = value 1500")

    def test_concurrent_scans_over_shared_file_object(self) -> None:
        body = "".join(f"= k{i} = value {i}\n" for i in range(20_000)).encode()
        stream = io.BytesIO(body)
        handles = [open_document(stream, "streaming") for _ in range(4)]
        barrier = threading.Barrier(len(handles))
        failures: list[Exception] = []

        def scan(handle: DocumentHandle) -> None:
            barrier.wait()
            try:
                handle.scan()
            except Exception as exc:
                failures.append(exc)

        threads = [threading.Thread(target=scan, args=(h,)) for h in handles]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert failures == []
        for handle in handles:
            assert len(handle.index) == 20_001
            assert handle.get("main/k19999") == "value 19999"
            assert handle.get("main/k7", "span") == (105, 119)
