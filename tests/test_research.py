"""Tests for research service operations."""

from __future__ import annotations

import json
import time
from pathlib import Path

import pytest

from edgarlens import research
from edgarlens.errors import DocumentsRequiredError, NotFoundError, ValidationError
from edgarlens.index.storage import ManifestStore


class TestValidation:
    @pytest.mark.parametrize(
        "top_k,lines,overlap,message",
        [
            (0, 40, 10, "--top-k"),
            (8, 0, 0, "--chunk-lines"),
            (8, 40, -1, "--chunk-overlap"),
            (8, 10, 10, "less than --chunk-lines"),
        ],
    )
    def test_invalid_chunking(self, top_k: int, lines: int, overlap: int, message: str) -> None:
        with pytest.raises(ValidationError, match=message):
            research.validate_chunking(top_k, lines, overlap)

    def test_blank_query(self) -> None:
        with pytest.raises(ValidationError):
            research.validate_query("   ")


class TestLoadDocPaths:
    """Test document path collection from flags and manifests."""

    def test_merges_and_deduplicates(self, tmp_path: Path, resignation_doc: Path) -> None:
        manifest = tmp_path / "manifest.json"
        manifest.write_text(json.dumps({"docs": [str(resignation_doc)]}), encoding="utf-8")

        paths = research.load_doc_paths([str(resignation_doc), "  "], str(manifest))

        assert paths == [str(resignation_doc.resolve())]

    def test_array_manifest(self, tmp_path: Path) -> None:
        manifest = tmp_path / "manifest.json"
        manifest.write_text(json.dumps(["a.md", "b.md"]), encoding="utf-8")

        paths = research.load_doc_paths([], str(manifest))

        assert [Path(path).name for path in paths] == ["a.md", "b.md"]

    def test_cached_manifest_shape(self, tmp_path: Path) -> None:
        manifest = tmp_path / "core.json"
        manifest.write_text(
            json.dumps({"version": 1, "docs": [{"accession": "x", "path": "/tmp/x.md"}]}),
            encoding="utf-8",
        )

        assert research.load_doc_paths([], str(manifest)) == [str(Path("/tmp/x.md").resolve())]

    def test_missing_manifest(self, tmp_path: Path) -> None:
        with pytest.raises(NotFoundError, match="Manifest not found"):
            research.load_doc_paths([], str(tmp_path / "missing.json"))

    def test_invalid_json(self, tmp_path: Path) -> None:
        manifest = tmp_path / "manifest.json"
        manifest.write_text("[", encoding="utf-8")

        with pytest.raises(ValidationError):
            research.load_doc_paths([], str(manifest))

    @pytest.mark.parametrize("payload", [{"docs": "a.md"}, {"paths": []}, [1, 2], "a.md"])
    def test_invalid_shape(self, tmp_path: Path, payload) -> None:
        manifest = tmp_path / "manifest.json"
        manifest.write_text(json.dumps(payload), encoding="utf-8")

        with pytest.raises(ValidationError):
            research.load_doc_paths([], str(manifest))


class TestReadDocuments:
    def test_preserves_input_order(self, resignation_doc: Path, management_doc: Path) -> None:
        documents = research.read_documents(
            [str(management_doc), str(resignation_doc)], max_workers=2
        )
        assert [doc.path for doc in documents] == [str(management_doc), str(resignation_doc)]

    def test_missing_document_fails_batch(self, tmp_path: Path, resignation_doc: Path) -> None:
        with pytest.raises(NotFoundError):
            research.read_documents([str(resignation_doc), str(tmp_path / "missing.md")])

    def test_empty(self) -> None:
        assert research.read_documents([]) == []

    def test_first_failure_to_complete_is_raised(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A slow early failure loses to a fast later one."""

        def fake_read(path: str):
            if path == "slow.md":
                time.sleep(0.2)
                raise NotFoundError("Document not found: slow.md")
            raise ValidationError("Document is not UTF-8 text: fast.md")

        monkeypatch.setattr(research, "read_source_document", fake_read)

        with pytest.raises(ValidationError, match="fast.md"):
            research.read_documents(["slow.md", "fast.md"], max_workers=2)


class TestAskExplicit:
    """Test ranking of caller-supplied documents."""

    def test_doc_and_manifest(self, tmp_path: Path, resignation_doc: Path, management_doc: Path) -> None:
        manifest = tmp_path / "manifest.json"
        manifest.write_text(json.dumps({"docs": [str(management_doc)]}), encoding="utf-8")

        data = research.ask_explicit(
            "Which director resigned from the board?",
            doc_paths=[str(resignation_doc)],
            manifest_path=str(manifest),
            top_k=3,
            chunk_lines=20,
            chunk_overlap=5,
        )

        assert data["backend"] == "lexical"
        assert data["query_terms"] == ["director", "resigned", "board"]
        assert [doc["path"] for doc in data["docs"]] == [
            str(resignation_doc.resolve()),
            str(management_doc.resolve()),
        ]
        assert data["chunk_count"] == 2
        assert data["result_count"] == 1
        assert "resigned from the Board" in data["results"][0]["excerpt"]

    def test_no_documents(self) -> None:
        with pytest.raises(DocumentsRequiredError):
            research.ask_explicit("guidance")

    def test_validation_before_reading(self, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            research.ask_explicit(
                "guidance",
                doc_paths=[str(tmp_path / "missing.md")],
                chunk_lines=5,
                chunk_overlap=5,
            )

    def test_empty_documents_yield_no_results(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.md"
        path.write_text("", encoding="utf-8")

        data = research.ask_explicit("guidance", doc_paths=[str(path)])

        assert data["chunk_count"] == 0
        assert data["results"] == []

    def test_missing_document(self, tmp_path: Path, resignation_doc: Path) -> None:
        with pytest.raises(NotFoundError):
            research.ask_explicit(
                "board", doc_paths=[str(resignation_doc), str(tmp_path / "gone.md")]
            )


class TestFilterScope:
    def test_filters(self, fake_catalog, tmp_path: Path) -> None:
        research.sync("AAPL", "core", catalog=fake_catalog, cache_root=tmp_path)
        docs = ManifestStore(tmp_path).read("0000320193", "core").docs

        assert {doc.form for doc in research.filter_scope(docs, forms=["8-k"])} == {"8-K"}
        assert research.filter_scope(docs, date_from="2999-01-01") == []
        assert len(research.filter_scope(docs)) == 4

    @pytest.mark.parametrize("bounds", [{"date_from": "2025-6-1"}, {"date_to": "2025/06/30"}])
    def test_malformed_dates_rejected(self, fake_catalog, tmp_path: Path, bounds) -> None:
        research.sync("AAPL", "core", catalog=fake_catalog, cache_root=tmp_path)
        docs = ManifestStore(tmp_path).read("0000320193", "core").docs

        with pytest.raises(ValidationError, match="YYYY-MM-DD"):
            research.filter_scope(docs, **bounds)


class TestAskByEntity:
    """Test cached-corpus asks with auto-sync."""

    def test_auto_sync_then_reuse(self, fake_catalog, tmp_path: Path) -> None:
        data = research.ask_by_entity(
            "AAPL",
            "who resigned effective immediately",
            catalog=fake_catalog,
            cache_root=tmp_path,
        )

        assert data["cik"] == "0000320193"
        assert data["profile"] == "core"
        assert data["corpus_docs_count"] == 4
        assert data["sync"]["fetched_count"] == 4
        assert data["results"][0]["accession"] == "0000320193-26-000111"
        assert "resigned" in data["results"][0]["excerpt"]

        fake_catalog.fetch_calls.clear()
        again = research.ask_by_entity(
            "AAPL", "who resigned", catalog=fake_catalog, cache_root=tmp_path
        )
        assert again["sync"] == {
            "docs_count": 4,
            "fetched_count": 0,
            "reused_count": 4,
            "skipped_count": 0,
        }
        assert fake_catalog.fetch_calls == []

    def test_no_sync_without_corpus(self, fake_catalog, tmp_path: Path) -> None:
        with pytest.raises(DocumentsRequiredError, match="Run research sync first"):
            research.ask_by_entity(
                "AAPL", "guidance", catalog=fake_catalog, cache_root=tmp_path, auto_sync=False
            )
        assert fake_catalog.fetch_calls == []

    def test_refresh_resyncs(self, fake_catalog, tmp_path: Path) -> None:
        research.sync("AAPL", "core", catalog=fake_catalog, cache_root=tmp_path)

        data = research.ask_by_entity(
            "AAPL", "revenue growth", catalog=fake_catalog, cache_root=tmp_path, refresh=True
        )

        assert data["sync"]["fetched_count"] == 4

    def test_scope_filters(self, fake_catalog, tmp_path: Path) -> None:
        data = research.ask_by_entity(
            "AAPL",
            "revenue growth",
            catalog=fake_catalog,
            cache_root=tmp_path,
            forms=["10-Q"],
        )

        assert data["scope_docs_count"] == 1
        assert [doc["path"] for doc in data["docs"]] == [
            str(ManifestStore(tmp_path).document_path("0000320193", "0000320193-26-000112"))
        ]

    def test_empty_scope(self, fake_catalog, tmp_path: Path) -> None:
        with pytest.raises(DocumentsRequiredError, match="match the requested scope"):
            research.ask_by_entity(
                "AAPL", "guidance", catalog=fake_catalog, cache_root=tmp_path, forms=["S-1"]
            )

    def test_malformed_date_rejected_before_sync(self, fake_catalog, tmp_path: Path) -> None:
        with pytest.raises(ValidationError, match="date_from must use YYYY-MM-DD"):
            research.ask_by_entity(
                "AAPL", "guidance", catalog=fake_catalog, cache_root=tmp_path, date_from="2025-6-1"
            )
        assert fake_catalog.fetch_calls == []

    def test_invalid_profile(self, fake_catalog, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            research.ask_by_entity(
                "AAPL", "guidance", catalog=fake_catalog, cache_root=tmp_path, profile="all"
            )
