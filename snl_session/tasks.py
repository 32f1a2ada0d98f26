"""Task records, the CSV task feed, and pack/level filtering."""

from __future__ import annotations

import csv
import io
import logging
import re
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

SPEAKING = "speaking"
ERROR_CORRECTION = "error_correction"
TRANSLATE_CA_EN = "translate_ca_en"
TRANSLATE_EN_CA = "translate_en_ca"

TASK_TYPES: tuple[str, ...] = (SPEAKING, ERROR_CORRECTION, TRANSLATE_CA_EN, TRANSLATE_EN_CA)

_TYPE_LABELS = {
    SPEAKING: "Speaking",
    ERROR_CORRECTION: "Fix the mistake",
    TRANSLATE_CA_EN: "Translate (CA → EN)",
    TRANSLATE_EN_CA: "Translate (EN → CA)",
}

DEFAULT_FOCUS = "General"
UNSPECIFIED_LEVEL = "Unspecified"


class TaskFeedError(Exception):
    """The task feed could not be downloaded."""


@dataclass(frozen=True)
class TaskRecord:
    """One practice challenge."""

    id: str
    prompt: str
    type: str = SPEAKING
    level: str = ""
    focus: str = DEFAULT_FOCUS
    target: str = ""
    grammar_tags: tuple[str, ...] = ()
    connectors: tuple[str, ...] = ()
    notes: str = ""
    source: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "prompt": self.prompt,
            "type": self.type,
            "level": self.level,
            "focus": self.focus,
            "target": self.target,
            "grammar_tags": list(self.grammar_tags),
            "connectors": list(self.connectors),
            "notes": self.notes,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict) -> TaskRecord:
        """Rebuild a record saved with :meth:`to_dict`.

        Raises ``ValueError`` when ``id`` or ``prompt`` is missing.
        """
        task_id = data.get("id")
        prompt = data.get("prompt")
        if not isinstance(task_id, str) or not isinstance(prompt, str) or not prompt:
            raise ValueError("task record needs a string id and a prompt")

        def text(key: str, default: str = "") -> str:
            value = data.get(key)
            return value if isinstance(value, str) else default

        def strings(key: str) -> tuple[str, ...]:
            value = data.get(key)
            if not isinstance(value, list):
                return ()
            return tuple(v for v in value if isinstance(v, str))

        return cls(
            id=task_id,
            prompt=prompt,
            type=text("type", SPEAKING) or SPEAKING,
            level=text("level"),
            focus=text("focus", DEFAULT_FOCUS) or DEFAULT_FOCUS,
            target=text("target"),
            grammar_tags=strings("grammar_tags"),
            connectors=strings("connectors"),
            notes=text("notes"),
            source=text("source"),
        )


def type_label(task_type: str) -> str:
    return _TYPE_LABELS.get(task_type, task_type)


# ── Packs & levels ───────────────────────────────────────────────────

@dataclass
class Pack:
    name: str
    count: int


def list_packs(tasks: list[TaskRecord]) -> list[Pack]:
    """Group tasks by focus, sorted by pack name."""
    counts: dict[str, int] = {}
    for t in tasks:
        key = (t.focus or DEFAULT_FOCUS).strip()
        if not key:
            continue
        counts[key] = counts.get(key, 0) + 1
    return [Pack(name=name, count=count) for name, count in sorted(counts.items())]


def list_levels(tasks: list[TaskRecord]) -> list[str]:
    """Distinct levels, sorted; ``Unspecified`` last if any task has none."""
    levels: set[str] = set()
    has_empty = False
    for t in tasks:
        lv = t.level.strip()
        if lv:
            levels.add(lv)
        else:
            has_empty = True
    out = sorted(levels)
    if has_empty:
        out.append(UNSPECIFIED_LEVEL)
    return out


@dataclass
class TaskFilter:
    """Which packs and levels the session draws from.

    ``pack`` is the older single-pack selection; it only applies while
    ``selected_packs`` is empty. Empty selections mean "everything".
    """

    pack: str = ""
    selected_packs: list[str] = field(default_factory=list)
    selected_levels: list[str] = field(default_factory=list)

    def effective_packs(self) -> list[str]:
        chosen = [p for p in self.selected_packs if p]
        if chosen:
            return chosen
        legacy = self.pack.strip()
        return [legacy] if legacy else []

    def label(self) -> str:
        chosen = [p for p in self.selected_packs if p]
        if len(chosen) > 1:
            return f"Mixed ({len(chosen)})"
        if len(chosen) == 1:
            return chosen[0]
        return self.pack.strip() or DEFAULT_FOCUS


def filter_tasks(tasks: list[TaskRecord], task_filter: TaskFilter) -> list[TaskRecord]:
    out = tasks
    packs = set(task_filter.effective_packs())
    if packs:
        out = [t for t in out if (t.focus or DEFAULT_FOCUS) in packs]

    levels = set(task_filter.selected_levels)
    if levels:
        out = [t for t in out if (t.level.strip() or UNSPECIFIED_LEVEL) in levels]

    return list(out)


# ── CSV feed ─────────────────────────────────────────────────────────

_HEADERS = (
    "id", "level", "pack", "focus", "prompt", "answer", "target",
    "grammar_tags", "tags", "connectors", "notes", "source",
    "type", "task_type", "lang_dir",
)


def split_tags(s: str) -> tuple[str, ...]:
    return tuple(x.strip() for x in re.split(r"[,;]+", s.strip()) if x.strip())


def infer_type(explicit: str, prompt: str, target: str) -> str:
    """Work out the task type from the type column or, failing that, the prompt."""
    explicit = explicit.lower()
    p = prompt.lower()
    if "error" in explicit:
        return ERROR_CORRECTION
    if "ca-en" in explicit or "ca_en" in explicit:
        return TRANSLATE_CA_EN
    if "en-ca" in explicit or "en_ca" in explicit:
        return TRANSLATE_EN_CA
    if "translate" in explicit and "ca" in explicit:
        return TRANSLATE_CA_EN
    if "translate" in explicit and "en" in explicit:
        return TRANSLATE_EN_CA
    if target and ("correct" in p or "fix" in p or "error" in p):
        return ERROR_CORRECTION
    if p.startswith("ca>") or p.startswith("ca:"):
        return TRANSLATE_CA_EN
    if p.startswith("en>") or p.startswith("en:"):
        return TRANSLATE_EN_CA
    return SPEAKING


def parse_tasks_csv(text: str) -> list[TaskRecord]:
    """Parse the published task sheet into records.

    Headers are matched case-insensitively. Rows without a prompt are
    skipped.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    rows = [r for r in csv.reader(io.StringIO(text)) if r != [] and r != [""]]
    if not rows:
        return []

    headers = [h.strip().lower() for h in rows[0]]
    idx = {name: headers.index(name) if name in headers else -1 for name in _HEADERS}

    tasks: list[TaskRecord] = []
    for r, row in enumerate(rows[1:], start=1):

        def get(key: str) -> str:
            i = idx[key]
            return row[i].strip() if 0 <= i < len(row) else ""

        prompt = get("prompt")
        if not prompt:
            continue
        target = get("target") or get("answer")
        focus = get("pack") or get("focus") or DEFAULT_FOCUS
        explicit = get("task_type") or get("type") or get("lang_dir")

        tasks.append(TaskRecord(
            id=get("id") or f"{focus}-{r}",
            level=get("level"),
            focus=focus,
            prompt=prompt,
            target=target,
            grammar_tags=split_tags(get("grammar_tags") or get("tags")),
            connectors=split_tags(get("connectors")),
            notes=get("notes"),
            source=get("source"),
            type=infer_type(explicit, prompt, target),
        ))

    logger.debug("parsed %d tasks from %d rows", len(tasks), len(rows) - 1)
    return tasks


def fetch_tasks(url: str, timeout: float = 30.0) -> list[TaskRecord]:
    """Download and parse the CSV feed at *url*."""
    try:
        with urllib.request.urlopen(url, timeout=timeout) as res:
            raw = res.read()
    except urllib.error.HTTPError as e:
        raise TaskFeedError(f"Failed to load tasks CSV ({e.code})") from e
    except (urllib.error.URLError, OSError) as e:
        raise TaskFeedError(f"Failed to load tasks CSV: {e}") from e

    # Published sheets sometimes omit the charset; always decode as UTF-8
    return parse_tasks_csv(raw.decode("utf-8", errors="replace"))


def load_tasks_file(path: Path | str) -> list[TaskRecord]:
    with open(path, encoding="utf-8") as f:
        return parse_tasks_csv(f.read())
