"""
Match Engine - apply every rule of a rule set to every extracted file.

Each file is one task. Tasks run on a ``ThreadPoolExecutor`` and each owns its
result list; the lists are merged by file index, so the output order (files in
extraction order, rules in rule-set order, matches in source order) never
depends on thread scheduling. The rule set is shared read-only.
"""

import logging
from bisect import bisect_right
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from ..errors import PatternApplicationError
from ..rules.model import file_type_for
from ..rules.rule_set import RuleSet
from .extractor import ScannedFile
from .report import Diagnostic

logger = logging.getLogger(__name__)

MAX_SNIPPET_LENGTH = 80
MAX_CONTEXT_LENGTH = 200
DEFAULT_WORKERS = 4


@dataclass(frozen=True)
class RawMatch:
    """One pattern hit before severity, ignore list and dedup are applied."""

    rule_id: str
    path: str
    line: int
    column: int
    snippet: str
    context: str = ""


def _bounded(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit - 3] + "..."


def _line_starts(content: str) -> List[int]:
    starts = [0]
    index = content.find("\n")
    while index != -1:
        starts.append(index + 1)
        index = content.find("\n", index + 1)
    return starts


def match_file(rule_set: RuleSet, scanned: ScannedFile) -> Tuple[List[RawMatch], List[Diagnostic]]:
    """Apply all rules to one file.

    Rules whose ``applies_to`` excludes the file type are skipped. A rule
    that fails on this file yields a ``pattern-application``
    diagnostic; the remaining rules still run.
    """
    content = scanned.content
    starts = _line_starts(content)
    file_type = file_type_for(scanned.path)
    matches: List[RawMatch] = []
    diagnostics: List[Diagnostic] = []

    for rule in rule_set:
        if not rule.applies_to_type(file_type):
            continue
        try:
            for m in rule.regex.finditer(content):
                start, end = m.span()
                if end == start:
                    continue
                line_index = bisect_right(starts, start) - 1
                line_start = starts[line_index]
                line_end = content.find("\n", line_start)
                if line_end == -1:
                    line_end = len(content)
                matches.append(RawMatch(
                    rule_id=rule.id,
                    path=scanned.path,
                    line=line_index + 1,
                    column=start - line_start + 1,
                    snippet=_bounded(content[start:end], MAX_SNIPPET_LENGTH),
                    context=_bounded(content[line_start:line_end].strip(), MAX_CONTEXT_LENGTH),
                ))
        except Exception as e:
            error = PatternApplicationError(
                scanned.path, f"pattern failed on this file: {e}", rule.id
            )
            logger.warning("Rule %s failed on %s: %s", rule.id, scanned.path, e)
            diagnostics.append(Diagnostic.from_error(error))

    return matches, diagnostics


class MatchEngine:
    """Runs a rule set over a stream of files with a pool of worker threads."""

    def __init__(self, rule_set: RuleSet, workers: int = DEFAULT_WORKERS):
        """
        Args:
            rule_set: Rules to apply; shared read-only by all workers.
            workers: Thread count. ``1`` matches sequentially on the
                calling thread.
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.rule_set = rule_set
        self.workers = workers
        self.diagnostics: List[Diagnostic] = []

    def match(self, files: Iterable[ScannedFile]) -> List[RawMatch]:
        """Match every file and return all raw matches in deterministic order.

        ``files`` is consumed lazily; per-file diagnostics are available in
        ``self.diagnostics`` afterwards, in the same file order.
        """
        if self.workers == 1:
            results = [match_file(self.rule_set, f) for f in files]
        else:
            results = self._match_parallel(files)

        matches: List[RawMatch] = []
        self.diagnostics = []
        for file_matches, file_diagnostics in results:
            matches.extend(file_matches)
            self.diagnostics.extend(file_diagnostics)
        logger.debug("Matched %d rule(s) over %d file(s): %d raw match(es)",
                     len(self.rule_set), len(results), len(matches))
        return matches

    def _match_parallel(self, files: Iterable[ScannedFile]) -> List[Tuple[List[RawMatch], List[Diagnostic]]]:
        ordered_results: Dict[int, Tuple[List[RawMatch], List[Diagnostic]]] = {}
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            future_to_idx = {}
            for idx, scanned in enumerate(files):
                future = pool.submit(match_file, self.rule_set, scanned)
                future_to_idx[future] = idx

            for future in as_completed(future_to_idx):
                ordered_results[future_to_idx[future]] = future.result()

        return [ordered_results[idx] for idx in range(len(ordered_results))]
