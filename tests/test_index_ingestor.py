"""
Unit tests for the index service: in-memory implementation, batching,
retries and the provider factory.
"""
from unittest.mock import Mock

import pytest

from domain.models import Chunk, ChunkMetadata
from embeddings.base import DummyEmbedding, EmbeddingConfig, EmbeddingException
from indexstore import (
    InMemoryIndexIngestor,
    IngestionError,
    cosine_similarity,
    create_index_ingestor,
    is_provider_available,
    is_transient_error,
    list_index_ingestors
)

META = ChunkMetadata(
    source="PCEM2/Cardiologie/Insuffisance.pdf",
    niveau="PCEM2",
    matiere="Cardiologie",
    cours="Insuffisance",
)


def _chunks(texts, page=1):
    return [Chunk(text=t, page_number=page, ordinal=i, metadata=META) for i, t in enumerate(texts)]


@pytest.fixture
def embedder():
    return DummyEmbedding(EmbeddingConfig(dimension=16))


@pytest.fixture
def sleep():
    return Mock()


class TestCosineSimilarity:
    """Tests para cosine_similarity"""

    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_zero_vector(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError, match="dimension mismatch"):
            cosine_similarity([1.0], [1.0, 2.0])


class TestTransientErrors:
    """Tests para la clasificación de errores reintentables"""

    @pytest.mark.parametrize("message", [
        "HTTP 503 Service Unavailable",
        "Request timed out",
        "read timeout",
        "ECONNRESET",
        "connection reset by peer",
        "Temporary failure in name resolution",
    ])
    def test_transient_messages(self, message):
        assert is_transient_error(Exception(message))

    def test_transient_types(self):
        assert is_transient_error(TimeoutError())
        assert is_transient_error(ConnectionResetError())

    def test_permanent_errors(self):
        assert not is_transient_error(ValueError("invalid input"))
        assert not is_transient_error(Exception("401 Unauthorized"))


class TestInMemoryIndexIngestor:
    """Tests para InMemoryIndexIngestor"""

    def test_create_index(self, embedder):
        """Prueba creación de índice"""
        ingestor = InMemoryIndexIngestor(embedder)

        index_id = ingestor.create_or_get_index("PCEM2__Cardiologie__Insuffisance")

        assert index_id.startswith("idx_")
        assert ingestor.count(index_id) == 0

    def test_same_name_reuses_index(self, embedder):
        """Prueba que el mismo nombre devuelve el mismo índice"""
        ingestor = InMemoryIndexIngestor(embedder)

        first = ingestor.create_or_get_index("a")
        second = ingestor.create_or_get_index("a")
        other = ingestor.create_or_get_index("b")

        assert first == second
        assert other != first
        assert [ref.name for ref in ingestor.list_indexes()] == ["a", "b"]

    def test_empty_name_rejected(self, embedder):
        """Prueba nombre vacío"""
        with pytest.raises(IngestionError, match="cannot be empty"):
            InMemoryIndexIngestor(embedder).create_or_get_index("")

    def test_add_chunks_stores_records(self, embedder):
        """Prueba que los chunks se guardan con sus metadatos"""
        ingestor = InMemoryIndexIngestor(embedder)
        index_id = ingestor.create_or_get_index("a")

        ingestor.add_chunks(index_id, _chunks(["premier", "second"], page=4))

        records = ingestor.get_records(index_id)
        assert [r["text"] for r in records] == ["premier", "second"]
        assert records[1]["meta"] == {
            "source": "PCEM2/Cardiologie/Insuffisance.pdf",
            "niveau": "PCEM2",
            "matiere": "Cardiologie",
            "cours": "Insuffisance",
            "page": 4,
            "ord": 1,
        }

    def test_add_chunks_appends(self, embedder):
        """Prueba que llamadas sucesivas agregan registros"""
        ingestor = InMemoryIndexIngestor(embedder)
        index_id = ingestor.create_or_get_index("a")

        ingestor.add_chunks(index_id, _chunks(["un"]))
        ingestor.add_chunks(index_id, _chunks(["deux", "trois"]))

        assert ingestor.count(index_id) == 3

    def test_add_empty_list(self, embedder):
        """Prueba lista vacía: no hace nada"""
        embedder = Mock(wraps=embedder)
        ingestor = InMemoryIndexIngestor(embedder)
        index_id = ingestor.create_or_get_index("a")

        ingestor.add_chunks(index_id, [])

        embedder.embed_texts.assert_not_called()
        assert ingestor.count(index_id) == 0

    def test_unknown_index(self, embedder):
        """Prueba id de índice desconocido"""
        ingestor = InMemoryIndexIngestor(embedder)
        with pytest.raises(IngestionError, match="Unknown index id"):
            ingestor.add_chunks("idx_missing", _chunks(["texte"]))

    def test_search_ranks_exact_match_first(self, embedder):
        """Prueba que la búsqueda devuelve primero el texto idéntico"""
        ingestor = InMemoryIndexIngestor(embedder)
        index_id = ingestor.create_or_get_index("a")
        ingestor.add_chunks(index_id, _chunks(["souffle cardiaque", "fracture du radius", "asthme"]))

        hits = ingestor.search(index_id, "fracture du radius", top_k=2)

        assert len(hits) == 2
        assert hits[0].text == "fracture du radius"
        assert hits[0].score == pytest.approx(1.0)
        assert hits[0].page == 1
        assert hits[0].ord == 1
        assert hits[0].score >= hits[1].score

    def test_search_unknown_index(self, embedder):
        """Prueba búsqueda en índice desconocido"""
        with pytest.raises(IngestionError):
            InMemoryIndexIngestor(embedder).search("idx_missing", "question")


class TestEmbeddingBatches:
    """Tests para el embedding por lotes con reintentos"""

    def test_batches_respect_batch_size(self, embedder):
        """Prueba que los textos se envían en lotes"""
        embedder = Mock(wraps=embedder)
        ingestor = InMemoryIndexIngestor(embedder, batch_size=2)
        index_id = ingestor.create_or_get_index("a")

        ingestor.add_chunks(index_id, _chunks(["a1", "a2", "a3", "a4", "a5"]))

        sizes = [len(call.args[0]) for call in embedder.embed_texts.call_args_list]
        assert sizes == [2, 2, 1]
        assert ingestor.count(index_id) == 5

    def test_transient_error_retried(self, embedder, sleep):
        """Prueba reintento ante un error transitorio"""
        flaky = Mock(wraps=embedder)
        flaky.embed_texts.side_effect = [
            EmbeddingException("503 Service Unavailable"),
            TimeoutError("timed out"),
            embedder.embed_texts(["texte"]),
        ]
        ingestor = InMemoryIndexIngestor(flaky, retry_attempts=5, retry_base_delay=0.5, sleep=sleep)
        index_id = ingestor.create_or_get_index("a")

        ingestor.add_chunks(index_id, _chunks(["texte"]))

        assert flaky.embed_texts.call_count == 3
        assert sleep.call_count == 2
        first_delay, second_delay = (call.args[0] for call in sleep.call_args_list)
        assert 0.5 <= first_delay <= 0.7
        assert 1.0 <= second_delay <= 1.2
        assert ingestor.count(index_id) == 1

    def test_retries_exhausted(self, embedder, sleep):
        """Prueba que se abandona tras el máximo de intentos"""
        flaky = Mock(wraps=embedder)
        flaky.embed_texts.side_effect = EmbeddingException("503 Service Unavailable")
        ingestor = InMemoryIndexIngestor(flaky, retry_attempts=3, sleep=sleep)
        index_id = ingestor.create_or_get_index("a")

        with pytest.raises(IngestionError, match=r"batch 0-1 after 3 attempt\(s\)"):
            ingestor.add_chunks(index_id, _chunks(["a", "b"]))

        assert flaky.embed_texts.call_count == 3
        assert sleep.call_count == 2
        assert ingestor.count(index_id) == 0

    def test_permanent_error_not_retried(self, embedder, sleep):
        """Prueba que un error no transitorio falla de inmediato"""
        broken = Mock(wraps=embedder)
        broken.embed_texts.side_effect = EmbeddingException("invalid api key")
        ingestor = InMemoryIndexIngestor(broken, sleep=sleep)
        index_id = ingestor.create_or_get_index("a")

        with pytest.raises(IngestionError, match="invalid api key"):
            ingestor.add_chunks(index_id, _chunks(["a"]))

        assert broken.embed_texts.call_count == 1
        sleep.assert_not_called()

    def test_count_mismatch_rejected(self, embedder, sleep):
        """Prueba que un número de vectores distinto al de textos falla"""
        short = Mock(wraps=embedder)
        short.embed_texts.return_value = [[0.1] * 16]
        ingestor = InMemoryIndexIngestor(short, sleep=sleep)
        index_id = ingestor.create_or_get_index("a")

        with pytest.raises(IngestionError, match="count mismatch"):
            ingestor.add_chunks(index_id, _chunks(["a", "b"]))

        assert ingestor.count(index_id) == 0


class TestIndexIngestorFactory:
    """Tests para el factory de servicios de índice"""

    def test_memory_registered(self):
        assert is_provider_available("memory")
        assert "memory" in list_index_ingestors()

    def test_create_memory(self, embedder):
        ingestor = create_index_ingestor("memory", embedder=embedder, batch_size=8)
        assert isinstance(ingestor, InMemoryIndexIngestor)
        assert ingestor.batch_size == 8

    def test_unknown_provider(self, embedder):
        with pytest.raises(ValueError, match="not found"):
            create_index_ingestor("pinecone", embedder=embedder)


class TestChromaIndexIngestor:
    """Tests para ChromaIndexIngestor (requiere chromadb)"""

    @pytest.fixture
    def ingestor(self, embedder, tmp_path):
        pytest.importorskip("chromadb")
        from indexstore.implementations.chroma import ChromaIndexIngestor
        return ChromaIndexIngestor(embedder, persist_directory=str(tmp_path / "chroma"))

    def test_collection_name_is_valid(self):
        from indexstore.implementations.chroma import collection_name_for

        name = collection_name_for("DCEM1__Pédiatrie__Croissance de l'enfant")

        assert name.startswith("DCEM1__Pediatrie__Croissance-de-l-enfant-")
        assert collection_name_for("DCEM1__Pédiatrie__Croissance de l'enfant") == name
        assert collection_name_for("a b") != collection_name_for("a-b")

    def test_add_and_search(self, ingestor):
        index_id = ingestor.create_or_get_index("PCEM2__Cardiologie__Insuffisance")
        assert ingestor.create_or_get_index("PCEM2__Cardiologie__Insuffisance") == index_id

        ingestor.add_chunks(index_id, _chunks(["souffle cardiaque", "fracture du radius"]))

        assert ingestor.count(index_id) == 2
        hits = ingestor.search(index_id, "fracture du radius", top_k=1)
        assert hits[0].text == "fracture du radius"
        assert hits[0].metadata["niveau"] == "PCEM2"
        assert hits[0].ord == 1

    def test_unknown_index(self, ingestor):
        with pytest.raises(IngestionError, match="Unknown index id"):
            ingestor.count("missing-00000000")
