"""File matchers deciding set membership and which files travel together.

A matcher answers two questions about a path: does it belong to the
working set, and which other files must be moved alongside it (sidecar
metadata, captions, thumbnails sharing a stem and so on).
"""

import fnmatch
import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Pattern, Sequence, Set, Union

from ..exceptions import ConfigurationError, FileOperationError, MatchError

logger = logging.getLogger(__name__)

REGEX_PREFIX = "re:"
PLACEHOLDER_RE = re.compile(r"\{(parent|stem|name|suffix|ext)\}")


def normalize_path(path: Union[str, Path]) -> Path:
    """Absolute, lexically normalized form used to compare path identity."""
    return Path(os.path.normpath(os.path.abspath(os.fspath(path))))


class FileMatcher(ABC):
    """Capability interface for selecting and grouping files."""

    @abstractmethod
    def matches(self, path: Path) -> bool:
        """Check whether path belongs to the working set.

        Raises:
            MatchError: If the path cannot be evaluated.
        """
        ...

    @abstractmethod
    def related(self, path: Path) -> Set[Path]:
        """Return existing files that must be grouped with path.

        Returned paths need not satisfy `matches` themselves.
        """
        ...


def _validate_path(path: Union[str, Path]) -> Path:
    if not isinstance(path, (str, os.PathLike)):
        raise MatchError(f"Expected a filesystem path, got {type(path).__name__}")
    text = os.fspath(path)
    if not text:
        raise MatchError("Empty path")
    if "\x00" in text:
        raise MatchError("Path contains a NUL byte", text.replace("\x00", "\\0"))
    return Path(text)


def _path_fields(path: Path, escape: bool = False) -> Dict[str, str]:
    fields = {
        "parent": str(path.parent),
        "stem": path.stem,
        "name": path.name,
        "suffix": path.suffix,
        "ext": path.suffix[1:],
    }
    if escape:
        fields = {key: re.escape(value) for key, value in fields.items()}
    return fields


def substitute(template: str, path: Path, escape: bool = False) -> str:
    """Replace `{parent}`, `{stem}`, `{name}`, `{suffix}` and `{ext}` in template.

    Other braces are left untouched, so regex quantifiers such as `\\d{2}`
    survive substitution.
    """
    fields = _path_fields(path, escape)
    return PLACEHOLDER_RE.sub(lambda match: fields[match.group(1)], template)


class PatternFileMatcher(FileMatcher):
    """Matcher driven by ordered match patterns and relation templates.

    Match patterns are globs tested against the file name, or regular
    expressions searched in the full POSIX path when prefixed with `re:`.
    The first pattern that matches wins.

    Relation templates produce candidate companion paths for a matched
    file. A plain template such as `{stem}.meta` is resolved against the
    matched file's directory. A `re:` template is matched against the
    names of sibling files, e.g. `re:{stem}_\\d+\\.jpg`. Only candidates
    that exist as files are kept.
    """

    def __init__(self,
                 patterns: Sequence[str],
                 relations: Sequence[str] = (),
                 case_sensitive: bool = True):
        if isinstance(patterns, str) or isinstance(relations, str):
            raise ConfigurationError("Patterns and relations must be sequences of strings")
        if not patterns:
            raise ConfigurationError("At least one match pattern is required")

        self.case_sensitive = case_sensitive
        self.patterns = list(patterns)
        self.relations = list(relations)
        self._flags = 0 if case_sensitive else re.IGNORECASE
        self._compiled: List[Union[Pattern, str]] = [self._compile(pattern) for pattern in self.patterns]

        for relation in self.relations:
            if relation.startswith(REGEX_PREFIX):
                # Validate with placeholders filled by a dummy path
                self._compile(REGEX_PREFIX + substitute(relation[len(REGEX_PREFIX):], Path("x"), escape=True))

    def _compile(self, pattern: str) -> Union[Pattern, str]:
        if not pattern.startswith(REGEX_PREFIX):
            return pattern if self.case_sensitive else pattern.lower()
        try:
            return re.compile(pattern[len(REGEX_PREFIX):], self._flags)
        except re.error as e:
            raise ConfigurationError(f"Invalid regex pattern '{pattern}': {e}") from e

    def matches(self, path: Path) -> bool:
        path = _validate_path(path)
        name = path.name if self.case_sensitive else path.name.lower()
        posix = path.as_posix()

        for pattern in self._compiled:
            if isinstance(pattern, str):
                if fnmatch.fnmatchcase(name, pattern):
                    return True
            elif pattern.search(posix):
                return True
        return False

    def related(self, path: Path) -> Set[Path]:
        path = normalize_path(_validate_path(path))
        found: Set[Path] = set()

        for relation in self.relations:
            if relation.startswith(REGEX_PREFIX):
                found.update(self._related_by_regex(path, relation[len(REGEX_PREFIX):]))
                continue

            candidate = Path(substitute(relation, path))
            if not candidate.is_absolute():
                candidate = path.parent / candidate
            candidate = normalize_path(candidate)
            if candidate != path and candidate.is_file():
                found.add(candidate)

        for companion in sorted(found):
            logger.debug(f"Related file for {path.name}: {companion}")
        return found

    def _related_by_regex(self, path: Path, template: str) -> Iterable[Path]:
        regex = re.compile(substitute(template, path, escape=True), self._flags)
        try:
            with os.scandir(path.parent) as scanner:
                siblings = [Path(entry.path) for entry in scanner if entry.is_file()]
        except OSError as e:
            raise FileOperationError(f"Cannot list siblings: {e}", path.parent) from e

        return [sibling for sibling in siblings
                if sibling != path and regex.fullmatch(sibling.name)]


class PredicateFileMatcher(FileMatcher):
    """Matcher wrapping plain callables.

    Any exception raised by the callables is re-raised as MatchError.
    """

    def __init__(self,
                 predicate: Callable[[Path], bool],
                 related: Optional[Callable[[Path], Iterable[Path]]] = None):
        self.predicate = predicate
        self.related_fn = related

    def matches(self, path: Path) -> bool:
        path = _validate_path(path)
        try:
            return bool(self.predicate(path))
        except MatchError:
            raise
        except Exception as e:
            raise MatchError(f"Predicate failed: {e}", path) from e

    def related(self, path: Path) -> Set[Path]:
        path = _validate_path(path)
        if self.related_fn is None:
            return set()
        try:
            candidates = [normalize_path(candidate) for candidate in self.related_fn(path)]
        except MatchError:
            raise
        except Exception as e:
            raise MatchError(f"Relation lookup failed: {e}", path) from e
        own = normalize_path(path)
        return {candidate for candidate in candidates if candidate != own and candidate.is_file()}
