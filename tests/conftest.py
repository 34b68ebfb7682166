"""
Test Configuration - Shared fixtures for docsearch tests.

Uses pytest fixtures to create isolated test environments. Elasticsearch is
replaced by FakeElasticsearch, an in-memory stand-in that understands the
handful of request shapes the package sends.
"""

import re
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Generator

import docx
import pytest
from elasticsearch import ConnectionError as ESConnectionError

from docsearch.config import SearchConfig, set_config


class FakeElasticsearch:
    """In-memory Elasticsearch client supporting count, index, search and refresh."""

    def __init__(self):
        self.store: dict[str, list[dict]] = {}
        self.indices = _FakeIndices(self)
        self.search_calls: list[dict] = []
        self.fail_count = False
        self.fail_index = False
        self.fail_search = False
        self.fail_refresh = False
        self.empty_ids = False
        self.closed = False
        self._next_id = 0
        self._lock = threading.Lock()

    def count(self, index, query):
        if self.fail_count:
            raise ESConnectionError("cluster unreachable")
        with self._lock:
            docs = self.store.get(index, [])
            matched = [d for d in docs if _matches_filters(d["_source"], query["bool"]["filter"])]
        return {"count": len(matched)}

    def index(self, index, document):
        if self.fail_index:
            raise ESConnectionError("write rejected")
        with self._lock:
            self._next_id += 1
            doc_id = "" if self.empty_ids else f"doc-{self._next_id}"
            self.store.setdefault(index, []).append(
                {"_id": doc_id, "_index": index, "_source": dict(document)}
            )
        return {"_id": doc_id, "_index": index, "result": "created"}

    def search(self, query, size=10, index=None, highlight=None):
        self.search_calls.append(
            {"query": query, "size": size, "index": index, "highlight": highlight}
        )
        if self.fail_search:
            raise ESConnectionError("search failed")

        keyword = query["bool"]["must"][0]["query_string"]["query"]
        terms = {t.lower() for t in re.findall(r"\w+", keyword)}
        targets = [index] if index else list(self.store)

        hits = []
        with self._lock:
            for name in targets:
                for doc in self.store.get(name, []):
                    source = doc["_source"]
                    if not _matches_filters(source, query["bool"]["filter"]):
                        continue
                    score = sum(
                        _term_count(str(source.get(f, "")), terms)
                        for f in ("title", "path", "content")
                    )
                    if score == 0:
                        continue
                    hit = {**doc, "_score": float(score)}
                    if highlight:
                        hit["highlight"] = _highlight(source, terms, highlight["fields"])
                    hits.append(hit)

        hits.sort(key=lambda h: h["_score"], reverse=True)
        return {"hits": {"total": {"value": len(hits)}, "hits": hits[:size]}}

    def all_documents(self) -> list[dict]:
        return [d for docs in self.store.values() for d in docs]

    def close(self):
        self.closed = True


class _FakeIndices:
    """The `client.indices` namespace; records refresh calls."""

    def __init__(self, es: "FakeElasticsearch"):
        self._es = es
        self.refreshed: list[str] = []

    def refresh(self, index):
        if self._es.fail_refresh:
            raise ESConnectionError("refresh failed")
        self.refreshed.append(index)
        return {"_shards": {"failed": 0}}


def _matches_filters(source: dict, filters: list) -> bool:
    return all(_matches(source, clause) for clause in filters)


def _matches(source: dict, clause: dict) -> bool:
    """Evaluate the term/exists/bool subset of the query DSL against a source."""
    if "term" in clause:
        field, value = next(iter(clause["term"].items()))
        return source.get(field.removesuffix(".keyword")) == value
    if "exists" in clause:
        return source.get(clause["exists"]["field"].removesuffix(".keyword")) is not None

    bool_query = clause["bool"]
    if not _matches_filters(source, bool_query.get("filter", [])):
        return False
    if any(_matches(source, c) for c in bool_query.get("must_not", [])):
        return False
    should = bool_query.get("should", [])
    if should:
        matched = sum(1 for c in should if _matches(source, c))
        return matched >= bool_query.get("minimum_should_match", 1)
    return True


def _term_count(text: str, terms: set) -> int:
    return sum(1 for word in re.findall(r"\w+", text.lower()) if word in terms)


def _highlight(source: dict, terms: set, fields: dict) -> dict:
    fragments = {}
    for field in fields:
        text = str(source.get(field, ""))
        if _term_count(text, terms):
            fragments[field] = [
                re.sub(
                    r"\w+",
                    lambda m: f"<em>{m.group(0)}</em>" if m.group(0).lower() in terms else m.group(0),
                    text,
                )
            ]
    return fragments


def write_pdf(path: Path, pages: list[str]) -> Path:
    """Write a minimal valid PDF with one line of Helvetica text per page."""
    page_ids = [4 + 2 * i for i in range(len(pages))]
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{' '.join(f'{p} 0 R' for p in page_ids)}] /Count {len(pages)} >>".encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for page_id, text in zip(page_ids, pages):
        stream = f"BT /F1 24 Tf 72 720 Td ({text}) Tj ET".encode()
        objects.append(
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 3 0 R >> >> /Contents {page_id + 1} 0 R >>".encode()
        )
        objects.append(
            f"<< /Length {len(stream)} >>\nstream\n".encode() + stream + b"\nendstream"
        )

    out = b"%PDF-1.4\n"
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    out += b"".join(f"{offset:010d} 00000 n \n".encode() for offset in offsets)
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode()

    path.write_bytes(out)
    return path


def write_docx(path: Path, paragraphs: list[str]) -> Path:
    """Write a Word document with the given paragraphs."""
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    document.save(str(path))
    return path


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    tmp = tempfile.mkdtemp(prefix="docsearch_test_")
    # Resolve to handle macOS /var -> /private/var symlink
    resolved = Path(tmp).resolve()
    yield resolved
    shutil.rmtree(str(resolved), ignore_errors=True)


@pytest.fixture
def test_config() -> Generator[SearchConfig, None, None]:
    """Create an isolated test configuration."""
    config = SearchConfig(
        es_hosts=["http://localhost:9200"],
        pipeline_concurrency=3,
        hasher_concurrency=2,
        extractor_concurrency=2,
    )
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def fake_es() -> FakeElasticsearch:
    return FakeElasticsearch()


@pytest.fixture
def sample_files(temp_dir: Path) -> dict[str, Path]:
    """Create a small document tree for testing."""
    files = {}

    txt = temp_dir / "notes.txt"
    txt.write_text("Meeting notes.\nThe build failed with an error on Friday.\n")
    files["txt"] = txt

    java = temp_dir / "Main.java"
    java.write_text('class Main { void run() { throw new Error("boom"); } }\n')
    files["java"] = java

    files["docx"] = write_docx(
        temp_dir / "report.docx",
        ["Quarterly report", "No error was found in the audit."],
    )

    nested_dir = temp_dir / "archive" / "2023"
    nested_dir.mkdir(parents=True)
    files["pdf"] = write_pdf(nested_dir / "manual.pdf", ["Installation guide", "Error codes"])

    nested = nested_dir / "deep.c"
    nested.write_text("int main(void) { return 0; }\n")
    files["nested"] = nested

    # Office lock file (should be skipped)
    lock = temp_dir / "~$draft.docx"
    lock.write_bytes(b"lock owner")
    files["lock"] = lock

    # Unsupported type (should be skipped)
    png = temp_dir / "image.png"
    png.write_bytes(b"\x89PNG\r\n\x1a\n")
    files["png"] = png

    return files


@pytest.fixture
def duplicate_files(temp_dir: Path) -> tuple[Path, Path]:
    """Create two files with identical content."""
    content = "This content is duplicated in two files.\n"

    file1 = temp_dir / "original.txt"
    file1.write_text(content)

    file2 = temp_dir / "copy.txt"
    file2.write_text(content)

    return file1, file2
