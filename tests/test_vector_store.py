"""Unit tests for the vector store implementations."""
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import patch, MagicMock
from models.chunk import Chunk, ScoredChunk
from services.vector_store import (
    InMemoryVectorStore,
    SupabaseVectorStore,
    group_by_source_file,
)


def make_chunk(owner_id="user-1", source_file="report.pdf", position=0, total=1,
               heading="Intro", content="Some content", embedding=None):
    return Chunk(
        chunk_id=f"{owner_id}-{source_file}-{position + 1}",
        content=content,
        position=position,
        total_chunks=total,
        source_file=source_file,
        owner_id=owner_id,
        heading=heading,
        embedding=embedding if embedding is not None else [1.0, 0.0, 0.0],
    )


class TestSupabaseVectorStore:
    """Test suite for SupabaseVectorStore."""

    @pytest.fixture
    def mock_client(self):
        with patch('services.vector_store.create_client') as mock_create_client:
            client = MagicMock()
            mock_create_client.return_value = client
            yield client

    @pytest.fixture
    def store(self, mock_client):
        return SupabaseVectorStore(
            supabase_url="https://test.supabase.co",
            supabase_key="test_key"
        )

    @patch('services.vector_store.create_client')
    def test_initialization_success(self, mock_create_client):
        """Test successful initialization with credentials."""
        mock_create_client.return_value = MagicMock()

        store = SupabaseVectorStore(
            supabase_url="https://test.supabase.co",
            supabase_key="test_key"
        )

        assert store.table_name == "document_chunks"
        assert store.match_function == "match_owner_chunks"
        mock_create_client.assert_called_once_with("https://test.supabase.co", "test_key")

    def test_initialization_without_credentials(self):
        """Test initialization fails without Supabase credentials."""
        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_KEY"):
            SupabaseVectorStore(supabase_url=None, supabase_key="test_key")

        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_KEY"):
            SupabaseVectorStore(supabase_url="https://test.supabase.co", supabase_key=None)

    def test_insert_success(self, store, mock_client):
        """Insert writes one row with owner, heading, content and vector."""
        chunk = make_chunk(embedding=[0.1, 0.2, 0.3])

        store.insert(chunk)

        mock_client.table.assert_called_with("document_chunks")
        record = mock_client.table.return_value.insert.call_args[0][0]
        assert record["owner_id"] == "user-1"
        assert record["chunk_id"] == chunk.chunk_id
        assert record["heading"] == "Intro"
        assert record["content"] == "Some content"
        assert record["embedding"] == [0.1, 0.2, 0.3]
        assert record["source_file"] == "report.pdf"
        assert record["position"] == 0
        assert record["total_chunks"] == 1
        mock_client.table.return_value.insert.return_value.execute.assert_called_once()

    def test_insert_requires_embedding(self, store, mock_client):
        """Unembedded chunks are rejected before reaching Supabase."""
        chunk = make_chunk(embedding=[])

        with pytest.raises(ValueError, match="must be embedded"):
            store.insert(chunk)
        assert not mock_client.table.called

    def test_insert_failure(self, store, mock_client):
        """Database errors surface as RuntimeError."""
        mock_client.table.return_value.insert.return_value.execute.side_effect = Exception("DB down")

        with pytest.raises(RuntimeError, match="Failed to insert chunk"):
            store.insert(make_chunk())

    def test_query_nearest(self, store, mock_client):
        """Rows from the match RPC become ScoredChunks ordered by distance."""
        mock_client.rpc.return_value.execute.return_value = MagicMock(data=[
            {
                "chunk_id": "c-2", "owner_id": "user-1", "heading": "Results",
                "content": "Second", "source_file": "report.pdf",
                "position": 1, "total_chunks": 2, "distance": 0.4
            },
            {
                "chunk_id": "c-1", "owner_id": "user-1", "heading": "Intro",
                "content": "First", "source_file": "report.pdf",
                "position": 0, "total_chunks": 2, "distance": 0.1
            },
        ])

        results = store.query_nearest("user-1", [0.1, 0.2, 0.3], limit=3)

        mock_client.rpc.assert_called_once_with(
            "match_owner_chunks",
            {"p_owner_id": "user-1", "query_embedding": [0.1, 0.2, 0.3], "match_count": 3}
        )
        assert [r.chunk.chunk_id for r in results] == ["c-1", "c-2"]
        assert all(isinstance(r, ScoredChunk) for r in results)
        assert results[0].distance == 0.1
        assert results[0].chunk.heading == "Intro"
        assert results[0].chunk.owner_id == "user-1"

    def test_query_nearest_drops_foreign_rows(self, store, mock_client):
        """Rows of another owner never leave the store."""
        mock_client.rpc.return_value.execute.return_value = MagicMock(data=[
            {
                "chunk_id": "c-1", "owner_id": "user-2", "heading": None,
                "content": "Foreign", "source_file": "x.pdf",
                "position": 0, "total_chunks": 1, "distance": 0.0
            },
        ])

        assert store.query_nearest("user-1", [0.1], limit=3) == []

    def test_query_nearest_validation(self, store):
        """Empty embeddings and non-positive limits are rejected."""
        with pytest.raises(ValueError, match="embedding cannot be empty"):
            store.query_nearest("user-1", [], limit=3)

        with pytest.raises(ValueError, match="limit must be positive"):
            store.query_nearest("user-1", [0.1], limit=0)

    def test_query_nearest_failure(self, store, mock_client):
        """RPC errors surface as RuntimeError."""
        mock_client.rpc.return_value.execute.side_effect = Exception("RPC error")

        with pytest.raises(RuntimeError, match="Failed to search vector store"):
            store.query_nearest("user-1", [0.1], limit=3)

    def test_list_by_owner(self, store, mock_client):
        """Rows are grouped per source file with counts and titles."""
        query = mock_client.table.return_value.select.return_value.eq.return_value.order.return_value
        query.range.return_value.execute.return_value = MagicMock(data=[
            {"source_file": "b.pdf", "heading": "B body", "position": 1, "created_at": "2024-02-01T10:00:00Z"},
            {"source_file": "b.pdf", "heading": "B title", "position": 0, "created_at": "2024-02-01T10:00:00Z"},
            {"source_file": "a.txt", "heading": "A title", "position": 0, "created_at": "2024-01-01T10:00:00+00:00"},
        ])

        summaries = store.list_by_owner("user-1")

        mock_client.table.return_value.select.return_value.eq.assert_called_once_with("owner_id", "user-1")
        query.range.assert_called_once_with(0, 999)
        assert [s.source_file for s in summaries] == ["b.pdf", "a.txt"]
        assert summaries[0].chunks_count == 2
        assert summaries[0].title == "B title"
        assert summaries[0].created_at == datetime(2024, 2, 1, 10, 0, tzinfo=timezone.utc)
        assert summaries[1].chunks_count == 1

    def test_list_by_owner_reads_every_page(self, mock_client):
        """Listing keeps requesting ranges until a short page comes back."""
        store = SupabaseVectorStore(
            supabase_url="https://test.supabase.co",
            supabase_key="test_key",
            page_size=2
        )
        row = {"heading": "Intro", "position": 0, "created_at": "2024-03-01T09:00:00Z"}
        query = mock_client.table.return_value.select.return_value.eq.return_value.order.return_value
        query.range.return_value.execute.side_effect = [
            MagicMock(data=[{**row, "source_file": "big.pdf"}, {**row, "source_file": "big.pdf"}]),
            MagicMock(data=[{**row, "source_file": "big.pdf"}, {**row, "source_file": "small.txt"}]),
            MagicMock(data=[{**row, "source_file": "small.txt"}]),
        ]

        summaries = store.list_by_owner("user-1")

        assert [c.args for c in query.range.call_args_list] == [(0, 1), (2, 3), (4, 5)]
        assert {s.source_file: s.chunks_count for s in summaries} == {"big.pdf": 3, "small.txt": 2}

    def test_list_by_owner_full_last_page_needs_one_more_request(self, mock_client):
        store = SupabaseVectorStore(
            supabase_url="https://test.supabase.co",
            supabase_key="test_key",
            page_size=1
        )
        query = mock_client.table.return_value.select.return_value.eq.return_value.order.return_value
        query.range.return_value.execute.side_effect = [
            MagicMock(data=[{"source_file": "a.txt", "heading": None, "position": 0, "created_at": None}]),
            MagicMock(data=[]),
        ]

        summaries = store.list_by_owner("user-1")

        assert query.range.call_count == 2
        assert [s.chunks_count for s in summaries] == [1]

    def test_list_by_owner_failure(self, store, mock_client):
        query = mock_client.table.return_value.select.return_value.eq.return_value.order.return_value
        query.range.return_value.execute.side_effect = Exception("timeout")

        with pytest.raises(RuntimeError, match="Failed to list documents"):
            store.list_by_owner("user-1")

    def test_rejects_non_positive_page_size(self, mock_client):
        with pytest.raises(ValueError, match="page_size must be positive"):
            SupabaseVectorStore(
                supabase_url="https://test.supabase.co",
                supabase_key="test_key",
                page_size=0
            )

    def test_delete_by_source_file(self, store, mock_client):
        """Delete is scoped to owner and file and returns the removed count."""
        delete = mock_client.table.return_value.delete.return_value
        delete.eq.return_value.eq.return_value.execute.return_value = MagicMock(
            data=[{"id": 1}, {"id": 2}]
        )

        deleted = store.delete_by_source_file("user-1", "report.pdf")

        assert deleted == 2
        delete.eq.assert_called_once_with("owner_id", "user-1")
        delete.eq.return_value.eq.assert_called_once_with("source_file", "report.pdf")

    def test_delete_failure(self, store, mock_client):
        """Delete errors surface as RuntimeError."""
        delete = mock_client.table.return_value.delete.return_value
        delete.eq.return_value.eq.return_value.execute.side_effect = Exception("DB down")

        with pytest.raises(RuntimeError, match="Failed to delete report.pdf"):
            store.delete_by_source_file("user-1", "report.pdf")


class TestGroupBySourceFile:
    """Test suite for per-file grouping."""

    def test_newest_first_and_title_from_first_position(self):
        rows = [
            {"source_file": "old.txt", "heading": "Old", "position": 0,
             "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc)},
            {"source_file": "new.txt", "heading": "Later", "position": 2,
             "created_at": datetime(2024, 3, 1, tzinfo=timezone.utc)},
            {"source_file": "new.txt", "heading": "First", "position": 0,
             "created_at": datetime(2024, 3, 1, tzinfo=timezone.utc)},
        ]

        summaries = group_by_source_file(rows)

        assert [s.source_file for s in summaries] == ["new.txt", "old.txt"]
        assert summaries[0].title == "First"
        assert summaries[0].chunks_count == 2

    def test_empty(self):
        assert group_by_source_file([]) == []


class TestInMemoryVectorStore:
    """Test suite for InMemoryVectorStore."""

    def test_query_orders_by_distance(self):
        store = InMemoryVectorStore()
        store.insert(make_chunk(position=0, content="far", embedding=[0.0, 1.0, 0.0]))
        store.insert(make_chunk(position=1, content="near", embedding=[1.0, 0.1, 0.0]))
        store.insert(make_chunk(position=2, content="exact", embedding=[2.0, 0.0, 0.0]))

        results = store.query_nearest("user-1", [1.0, 0.0, 0.0], limit=3)

        assert [r.chunk.content for r in results] == ["exact", "near", "far"]
        assert results[0].distance == pytest.approx(0.0)
        assert results[2].distance == pytest.approx(1.0)

    def test_limit_and_owner_scope(self):
        store = InMemoryVectorStore()
        for position in range(5):
            store.insert(make_chunk(owner_id="user-1", position=position))
        store.insert(make_chunk(owner_id="user-2", content="other owner"))

        results = store.query_nearest("user-1", [1.0, 0.0, 0.0], limit=3)

        assert len(results) == 3
        assert all(r.chunk.owner_id == "user-1" for r in results)
        # Ties keep insertion order
        assert [r.chunk.position for r in results] == [0, 1, 2]
        assert store.query_nearest("user-3", [1.0, 0.0, 0.0], limit=3) == []

    def test_zero_vector_has_maximum_distance(self):
        store = InMemoryVectorStore()
        store.insert(make_chunk(embedding=[0.0, 0.0, 0.0]))

        results = store.query_nearest("user-1", [1.0, 0.0, 0.0], limit=1)

        assert results[0].distance == 1.0

    def test_dimension_mismatch(self):
        store = InMemoryVectorStore()
        store.insert(make_chunk(embedding=[1.0, 0.0, 0.0]))

        with pytest.raises(ValueError, match="dimension mismatch"):
            store.query_nearest("user-1", [1.0, 0.0], limit=1)

    def test_insert_requires_embedding(self):
        store = InMemoryVectorStore()

        with pytest.raises(ValueError, match="must be embedded"):
            store.insert(make_chunk(embedding=[]))
        assert store.count() == 0

    def test_query_validation(self):
        store = InMemoryVectorStore()

        with pytest.raises(ValueError):
            store.query_nearest("user-1", [], limit=3)
        with pytest.raises(ValueError):
            store.query_nearest("user-1", [1.0], limit=-1)

    def test_list_and_delete(self):
        store = InMemoryVectorStore()
        store.insert(make_chunk(source_file="a.txt", position=0, total=2, heading="A title"))
        store.insert(make_chunk(source_file="a.txt", position=1, total=2, heading="A body"))
        store.insert(make_chunk(source_file="b.txt"))
        store.insert(make_chunk(owner_id="user-2", source_file="a.txt"))

        summaries = {s.source_file: s for s in store.list_by_owner("user-1")}
        assert set(summaries) == {"a.txt", "b.txt"}
        assert summaries["a.txt"].chunks_count == 2
        assert summaries["a.txt"].title == "A title"

        assert store.delete_by_source_file("user-1", "a.txt") == 2
        assert store.delete_by_source_file("user-1", "a.txt") == 0
        assert [s.source_file for s in store.list_by_owner("user-1")] == ["b.txt"]
        # Other owner's copy of the same file name is untouched
        assert [s.chunks_count for s in store.list_by_owner("user-2")] == [1]
        assert store.count() == 2
