"""Tests for the command-line interface.

WHY: The CLI is the only way to convert notes outside the host. It must
resolve images on disk, never overwrite earlier output, and fail with a
clear message and exit status 1.

HOW: main() is called with an explicit argv against files in tmp_path;
outputs are re-opened with python-docx.
"""

import json
from io import BytesIO

import docx
import pytest
from PIL import Image as PILImage

from word_converter.cli import _resolve_output_path, build_parser, main


@pytest.fixture
def note(tmp_path):
    path = tmp_path / "My Note.md"
    path.write_text("# Heading\n\n![[pic.png|100]]\n\nText[^a]\n\n[^a]: Def", encoding="utf-8")
    buffer = BytesIO()
    PILImage.new("RGB", (200, 100)).save(buffer, format="PNG")
    (tmp_path / "attachments").mkdir()
    (tmp_path / "attachments" / "pic.png").write_bytes(buffer.getvalue())
    return path


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args(["note.md"])
        assert args.formats == "docx"
        assert args.output_dir is None
        assert not args.title_header

    def test_page_size_choices(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["note.md", "--page-size", "B7"])


class TestResolveOutputPath:
    def test_conflicts_get_numeric_suffix(self, tmp_path):
        assert _resolve_output_path("note", ".docx", tmp_path) == tmp_path / "note.docx"
        (tmp_path / "note.docx").write_bytes(b"")
        assert _resolve_output_path("note", ".docx", tmp_path) == tmp_path / "note-2.docx"
        (tmp_path / "note-2.docx").write_bytes(b"")
        assert _resolve_output_path("note", ".docx", tmp_path) == tmp_path / "note-3.docx"


class TestMain:
    def test_converts_note(self, note, capsys):
        main([str(note), "--title-header"])
        output = note.parent / "My Note.docx"
        document = docx.Document(str(output))
        texts = [p.text for p in document.paragraphs]
        assert texts[0] == "My Note"
        assert "Heading" in texts
        assert len(document.inline_shapes) == 1
        assert "Footnotes" in texts
        assert "Done!" in capsys.readouterr().err

    def test_multiple_formats_and_output_dir(self, note, tmp_path):
        out = tmp_path / "out"
        out.mkdir()
        main([str(note), "--formats", "docx,plain_text", "--output-dir", str(out)])
        assert (out / "My Note.docx").exists()
        text = (out / "My Note.txt").read_text(encoding="utf-8")
        assert text.startswith("Heading\n")

    def test_second_run_does_not_overwrite(self, note):
        main([str(note)])
        main([str(note)])
        assert (note.parent / "My Note.docx").exists()
        assert (note.parent / "My Note-2.docx").exists()

    def test_settings_file_and_overrides(self, note, tmp_path):
        settings = tmp_path / "settings.json"
        settings.write_text(json.dumps({"defaultFontFamily": "Georgia", "pageSize": "Letter"}))
        main([str(note), "--settings", str(settings), "--font-size", "14"])
        document = docx.Document(str(note.parent / "My Note.docx"))
        assert document.styles["Normal"].font.name == "Georgia"
        assert document.styles["Normal"].font.size.pt == 14
        assert document.sections[0].page_width.inches == pytest.approx(8.5)

    def test_missing_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main([str(tmp_path / "nope.md")])
        assert excinfo.value.code == 1
        assert "Error: File not found" in capsys.readouterr().err

    def test_unknown_format(self, note, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main([str(note), "--formats", "pdf"])
        assert excinfo.value.code == 1
        assert "Unknown format 'pdf'" in capsys.readouterr().err

    def test_bad_settings_file(self, note, tmp_path, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text("[]")
        with pytest.raises(SystemExit):
            main([str(note), "--settings", str(bad)])
        assert "Error:" in capsys.readouterr().err
