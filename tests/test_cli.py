"""
Tests para los puntos de entrada de línea de comandos.
"""
from unittest.mock import Mock, patch

import pytest

import main as cli
from domain.models import Chunk, ChunkMetadata, ExtractedPage, SearchHit
from embeddings.base import DummyEmbedding, EmbeddingConfig
from indexstore import InMemoryIndexIngestor
from tools import build_index, search_index


def _touch(path, content=b"%PDF-1.4 fake"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


@pytest.fixture
def memory_ingestor():
    return InMemoryIndexIngestor(DummyEmbedding(EmbeddingConfig(dimension=8)))


class TestMain:
    """Tests para main.py"""

    def test_dry_run(self, tmp_path, capsys):
        """Prueba corrida en seco sobre un árbol real"""
        _touch(tmp_path / "PCEM1" / "Anatomie.pdf")
        _touch(tmp_path / "PCEM2" / "Cardiologie" / "Insuffisance.pdf")

        with patch("ingestion.pipeline.PdfPageExtractor.extract_file") as extract_file:
            code = cli.main([str(tmp_path), "--dry"])

        assert code == 0
        extract_file.assert_not_called()
        out = capsys.readouterr().out
        assert "✔ PCEM1/Anatomie.pdf => (dry run)" in out
        assert "✔ PCEM2/Cardiologie/Insuffisance.pdf => (dry run)" in out

    def test_missing_root(self, tmp_path, capsys):
        """Prueba raíz inexistente: código de salida 1"""
        code = cli.main([str(tmp_path / "absent"), "--dry"])

        assert code == 1
        assert "Root folder not found" in capsys.readouterr().err

    def test_empty_root(self, tmp_path, capsys):
        """Prueba raíz sin PDFs"""
        code = cli.main([str(tmp_path), "--dry"])

        assert code == 0
        assert "No PDFs found." in capsys.readouterr().out

    def test_invalid_chunk_config(self, tmp_path, capsys):
        """Prueba overlap mayor que chunk_size"""
        code = cli.main([str(tmp_path), "--chunk-size", "100", "--chunk-overlap", "200"])

        assert code == 2
        assert "chunk_overlap must be smaller than chunk_size" in capsys.readouterr().err

    def test_failures_listed_in_summary(self, tmp_path, capsys, memory_ingestor):
        """Prueba que los fallos aparecen en el resumen sin cambiar el código de salida"""
        _touch(tmp_path / "PCEM1" / "Anatomie.pdf")
        _touch(tmp_path / "PCEM1" / "Casse.pdf", b"not a pdf")

        def extract(data):
            if data == b"not a pdf":
                raise ValueError("Error reading PDF: EOF marker not found")
            return [ExtractedPage(1, "Os et articulations. " * 5)]

        with patch.object(cli, "build_embedder", return_value=memory_ingestor.embedder), \
                patch.object(cli, "build_index_ingestor", return_value=memory_ingestor), \
                patch("ingestion.pipeline.PdfPageExtractor.extract", side_effect=extract):
            code = cli.main([str(tmp_path)])

        assert code == 0
        out = capsys.readouterr().out
        assert "✗ PCEM1/Casse.pdf => Error reading PDF: EOF marker not found" in out
        assert "1/2 ok" in out


class TestBuildIndexTool:
    """Tests para tools/build_index.py"""

    def test_parse_metadata_pairs(self):
        """Prueba el parseo de clave=valor"""
        meta = build_index.parse_metadata_pairs(
            ["NIVEAU=PCEM2", "matiere=Cardiologie", "cours=", "autre=x", "sans-egal"]
        )
        assert meta == {"niveau": "PCEM2", "matiere": "Cardiologie"}

    def test_document_for_local_file(self, tmp_path):
        """Prueba metadatos de un PDF local"""
        pdf = _touch(tmp_path / "Insuffisance.pdf")

        doc = build_index.document_for(str(pdf), {"niveau": "PCEM2"})

        assert doc.niveau == "PCEM2"
        assert doc.matiere == "PCEM2"
        assert doc.cours == "Insuffisance"
        assert doc.metadata.source == str(pdf)

    def test_document_for_url(self):
        """Prueba metadatos de un PDF remoto"""
        doc = build_index.document_for("https://example.org/cours/Asthme.pdf?v=2", {})

        assert doc.cours == "Asthme"
        assert doc.niveau == "UNKNOWN"

    @patch("tools.build_index.requests.get")
    def test_read_pdf_download(self, mock_get):
        """Prueba descarga por URL"""
        mock_get.return_value = Mock(content=b"%PDF-1.4", raise_for_status=Mock())

        assert build_index.read_pdf("http://example.org/a.pdf") == b"%PDF-1.4"
        mock_get.assert_called_once_with("http://example.org/a.pdf", timeout=build_index.DOWNLOAD_TIMEOUT)

    @patch("tools.build_index.requests.get")
    def test_read_pdf_download_error(self, mock_get):
        """Prueba error HTTP en la descarga"""
        response = Mock()
        response.raise_for_status.side_effect = build_index.requests.exceptions.HTTPError("404")
        mock_get.return_value = response

        with pytest.raises(build_index.DownloadError, match="Failed to download PDF"):
            build_index.read_pdf("https://example.org/a.pdf")

    def test_build_from_local_file(self, tmp_path, capsys, memory_ingestor):
        """Prueba construcción de un índice desde un archivo local"""
        pdf = _touch(tmp_path / "Insuffisance.pdf")
        pages = [ExtractedPage(1, "Le coeur. " * 50), ExtractedPage(2, "Les valves.")]

        with patch.object(build_index, "build_embedder", return_value=memory_ingestor.embedder), \
                patch.object(build_index, "build_index_ingestor", return_value=memory_ingestor), \
                patch("ingestion.pipeline.PdfPageExtractor.extract", return_value=pages):
            code = build_index.main([str(pdf), "niveau=PCEM2", "matiere=Cardiologie", "--name", "demo"])

        assert code == 0
        ref = memory_ingestor.list_indexes()[0]
        assert ref.name == "demo"
        assert f"Done. Index ID: {ref.id}" in capsys.readouterr().out
        records = memory_ingestor.get_records(ref.id)
        assert {r["meta"]["page"] for r in records} == {1, 2}
        assert all(r["meta"]["matiere"] == "Cardiologie" for r in records)

    def test_missing_local_file(self, tmp_path, capsys):
        """Prueba archivo local inexistente"""
        code = build_index.main([str(tmp_path / "absent.pdf")])

        assert code == 1
        assert "absent.pdf" in capsys.readouterr().err


class TestSearchIndexTool:
    """Tests para tools/search_index.py"""

    def test_format_hit(self):
        hit = SearchHit(id="r1", text="Le coeur.", score=0.91234, page=3, ord=0)
        assert search_index.format_hit(hit) == "score=0.9123 page=3 ord=0 id=r1\nLe coeur.\n---"

    def test_format_hit_without_position(self):
        hit = SearchHit(id="r1", text="x", score=0.5)
        assert search_index.format_hit(hit).startswith("score=0.5000 page=- ord=- id=r1")

    def test_search(self, capsys, memory_ingestor):
        """Prueba búsqueda de punta a punta sobre un índice en memoria"""
        index_id = memory_ingestor.create_or_get_index("demo")
        meta = ChunkMetadata(source="a.pdf", niveau="A", matiere="A", cours="a")
        memory_ingestor.add_chunks(index_id, [
            Chunk(text="asthme", page_number=1, ordinal=0, metadata=meta),
            Chunk(text="fracture", page_number=2, ordinal=0, metadata=meta),
        ])

        with patch.object(search_index, "build_embedder", return_value=memory_ingestor.embedder), \
                patch.object(search_index, "build_index_ingestor", return_value=memory_ingestor):
            code = search_index.main([index_id, "fracture", "--top-k", "1"])

        assert code == 0
        out = capsys.readouterr().out
        assert "page=2 ord=0" in out
        assert "fracture\n---" in out
        assert "asthme" not in out

    def test_unknown_index(self, capsys, memory_ingestor):
        """Prueba índice desconocido"""
        with patch.object(search_index, "build_embedder", return_value=memory_ingestor.embedder), \
                patch.object(search_index, "build_index_ingestor", return_value=memory_ingestor):
            code = search_index.main(["idx_missing", "question"])

        assert code == 1
        assert "Unknown index id" in capsys.readouterr().err
