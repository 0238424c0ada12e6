"""Tests for file name and header helpers."""

from algoshelf.core.modules.file.utils import DEFAULT_FILENAME, MAX_FILENAME_LENGTH, content_disposition, sanitize_filename


class TestSanitizeFilename:
    """Tests for sanitize_filename function."""

    def test_normal_filename_unchanged(self):
        """Test that ordinary names pass through."""
        assert sanitize_filename("dijkstra.py") == "dijkstra.py"
        assert sanitize_filename("benchmark (final).png") == "benchmark (final).png"
        assert sanitize_filename("archive.tar.gz") == "archive.tar.gz"

    def test_directory_parts_dropped(self):
        """Test that Unix and Windows paths are reduced to the base name."""
        assert sanitize_filename("../../../etc/passwd") == "passwd"
        assert sanitize_filename("C:\\Users\\me\\notes.md") == "notes.md"
        assert sanitize_filename("/abs/path/slides.pdf") == "slides.pdf"

    def test_leading_dots_removed(self):
        """Test that hidden-file dots are stripped."""
        assert sanitize_filename(".bashrc") == "bashrc"
        assert sanitize_filename("...trace.log") == "trace.log"

    def test_special_characters_replaced(self):
        """Test that shell and header special characters become underscores."""
        assert sanitize_filename("a<b>c.txt") == "a_b_c.txt"
        assert sanitize_filename('quote"d;name.txt') == "quote_d_name.txt"
        assert sanitize_filename("x\r\ny.txt") == "x y.txt"

    def test_unicode_letters_kept(self):
        """Test that non-ASCII letters survive."""
        assert sanitize_filename("résumé.pdf") == "résumé.pdf"

    def test_long_filename_keeps_extension(self):
        """Test that long names are truncated without losing the extension."""
        result = sanitize_filename("a" * 300 + ".mp4")
        assert len(result) == MAX_FILENAME_LENGTH
        assert result.endswith(".mp4")

    def test_empty_or_meaningless_names(self):
        """Test that nothing usable falls back to the default name."""
        assert sanitize_filename("") == DEFAULT_FILENAME
        assert sanitize_filename("...") == DEFAULT_FILENAME
        assert sanitize_filename("***") == DEFAULT_FILENAME


class TestContentDisposition:
    """Tests for content_disposition function."""

    def test_plain_ascii_name(self):
        """Test that simple names are quoted directly."""
        assert content_disposition("inline", "graph.png") == 'inline; filename="graph.png"'

    def test_attachment_with_space(self):
        """Test that names needing escaping get an RFC 5987 parameter."""
        result = content_disposition("attachment", "my notes.pdf")
        assert result == "attachment; filename=\"my notes.pdf\"; filename*=utf-8''my%20notes.pdf"

    def test_non_ascii_name(self):
        """Test that non-ASCII names carry an ASCII fallback and the encoded original."""
        result = content_disposition("attachment", "résumé.pdf")
        assert result.startswith('attachment; filename="rsum.pdf"')
        assert result.endswith("filename*=utf-8''r%C3%A9sum%C3%A9.pdf")
