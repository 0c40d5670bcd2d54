"""Tests for file matchers."""

from pathlib import Path

import pytest

from dirsplit.core.matcher import PatternFileMatcher, PredicateFileMatcher, substitute
from dirsplit.exceptions import ConfigurationError, MatchError


@pytest.fixture
def dataset(tmp_path):
    """Create images with sidecar captions and thumbnails."""
    for name in ("a.png", "a.txt", "a_1.jpg", "a_2.jpg", "a_x.jpg", "b.png", "notes.md"):
        (tmp_path / name).write_text(name)
    return tmp_path


class TestSubstitute:
    """Test relation template substitution."""

    def test_fields(self):
        path = Path("/data/set/photo.tar.gz")
        assert substitute("{parent}|{stem}|{name}|{suffix}|{ext}", path) == \
            "/data/set|photo.tar|photo.tar.gz|.gz|gz"

    def test_unknown_braces_are_preserved(self):
        assert substitute(r"{stem}_\d{2}", Path("a.png")) == r"a_\d{2}"

    def test_escaping(self):
        assert substitute("{stem}", Path("a+b.png"), escape=True) == r"a\+b"


class TestPatternFileMatcher:
    """Test glob and regex based matching."""

    def test_glob_patterns_match_file_name(self, dataset):
        matcher = PatternFileMatcher(["*.png", "*.md"])

        assert matcher.matches(dataset / "a.png")
        assert matcher.matches(dataset / "notes.md")
        assert not matcher.matches(dataset / "a.txt")

    def test_glob_is_case_sensitive_by_default(self):
        matcher = PatternFileMatcher(["*.png"])
        assert not matcher.matches(Path("A.PNG"))

        insensitive = PatternFileMatcher(["*.png"], case_sensitive=False)
        assert insensitive.matches(Path("A.PNG"))

    def test_regex_pattern_searches_full_path(self):
        matcher = PatternFileMatcher([r"re:/train/.*\.png$"])

        assert matcher.matches(Path("/data/train/x.png"))
        assert not matcher.matches(Path("/data/val/x.png"))

    def test_any_pattern_matches(self):
        matcher = PatternFileMatcher(["*.jpg", "re:special"])
        assert matcher.matches(Path("/a/special.bin"))
        assert matcher.matches(Path("/a/photo.jpg"))

    def test_related_by_template(self, dataset):
        matcher = PatternFileMatcher(["*.png"], ["{stem}.txt", "{stem}.missing"])

        assert matcher.related(dataset / "a.png") == {dataset / "a.txt"}
        assert matcher.related(dataset / "b.png") == set()

    def test_related_by_absolute_template(self, dataset):
        matcher = PatternFileMatcher(["*.png"], ["{parent}/{stem}.txt"])
        assert matcher.related(dataset / "a.png") == {dataset / "a.txt"}

    def test_related_by_regex(self, dataset):
        matcher = PatternFileMatcher(["*.png"], [r"re:{stem}_\d+\.jpg"])

        assert matcher.related(dataset / "a.png") == {dataset / "a_1.jpg", dataset / "a_2.jpg"}

    def test_related_never_includes_the_file_itself(self, dataset):
        matcher = PatternFileMatcher(["*.png"], ["{name}", r"re:.*"])
        related = matcher.related(dataset / "a.png")

        assert dataset / "a.png" not in related
        assert dataset / "a.txt" in related

    def test_related_paths_are_normalized(self, dataset):
        matcher = PatternFileMatcher(["*.png"], [f"../{dataset.name}/{{stem}}.txt", f"../{dataset.name}/{{name}}"])
        related = matcher.related(dataset / "a.png")

        assert related == {dataset / "a.txt"}

    def test_invalid_regex_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError):
            PatternFileMatcher(["re:("])
        with pytest.raises(ConfigurationError):
            PatternFileMatcher(["*.png"], ["re:{stem}("])

    def test_requires_patterns(self):
        with pytest.raises(ConfigurationError):
            PatternFileMatcher([])
        with pytest.raises(ConfigurationError):
            PatternFileMatcher("*.png")

    @pytest.mark.parametrize("bad", [None, 42, "", "bad\x00name.png"])
    def test_malformed_paths_raise_match_error(self, bad):
        matcher = PatternFileMatcher(["*.png"])
        with pytest.raises(MatchError):
            matcher.matches(bad)


class TestPredicateFileMatcher:
    """Test callable-backed matching."""

    def test_predicate_and_related(self, dataset):
        matcher = PredicateFileMatcher(
            predicate=lambda path: path.suffix == ".png",
            related=lambda path: [path.with_suffix(".txt"), path.with_suffix(".nope")],
        )

        assert matcher.matches(dataset / "a.png")
        assert not matcher.matches(dataset / "a.txt")
        assert matcher.related(dataset / "a.png") == {dataset / "a.txt"}

    def test_related_spellings_collapse_to_one_path(self, dataset, monkeypatch):
        monkeypatch.chdir(dataset.parent)
        matcher = PredicateFileMatcher(
            predicate=lambda path: True,
            related=lambda path: [
                Path(dataset.name) / "a.txt",
                dataset / "sub" / ".." / "a.txt",
                Path(dataset.name) / "a.png",
            ],
        )

        assert matcher.related(Path(dataset.name) / "a.png") == {dataset / "a.txt"}

    def test_no_related_callable(self, dataset):
        matcher = PredicateFileMatcher(lambda path: True)
        assert matcher.related(dataset / "a.png") == set()

    def test_predicate_errors_become_match_errors(self, dataset):
        def broken(path):
            raise KeyError("lookup")

        matcher = PredicateFileMatcher(broken, related=broken)

        with pytest.raises(MatchError) as exc_info:
            matcher.matches(dataset / "a.png")
        assert exc_info.value.path == dataset / "a.png"

        with pytest.raises(MatchError):
            matcher.related(dataset / "a.png")
