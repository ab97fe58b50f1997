from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .models import ItemResult, Outcome


@dataclass
class Report:
    """Per-item outcomes collected across all stages, in execution order."""

    items: List[ItemResult] = field(default_factory=list)

    def add(self, result: ItemResult) -> None:
        self.items.append(result)

    def extend(self, results: Iterable[ItemResult]) -> None:
        self.items.extend(results)

    def counts(self) -> Dict[Outcome, int]:
        c = Counter(r.outcome for r in self.items)
        return {o: c.get(o, 0) for o in Outcome}

    def failures(self) -> List[ItemResult]:
        return [r for r in self.items if r.outcome is Outcome.FAILED]

    def for_stage(self, stage: str) -> List[ItemResult]:
        return [r for r in self.items if r.stage == stage]

    @property
    def ok(self) -> bool:
        return not self.failures()

    def render_table(self) -> str:
        lines: List[str] = []
        if not self.items:
            return "Nothing to do."

        stage_w = max(len("STAGE"), *(len(r.stage) for r in self.items))
        item_w = min(40, max(len("ITEM"), *(len(r.item) for r in self.items)))

        lines.append(f"{'STAGE':<{stage_w}}  {'ITEM':<{item_w}}  {'OUTCOME':<15}  DETAIL")
        lines.append("-" * (stage_w + item_w + 30))
        for r in self.items:
            item = r.item if len(r.item) <= item_w else r.item[: item_w - 3] + "..."
            detail = r.detail.splitlines()[0] if r.detail else ""
            lines.append(f"{r.stage:<{stage_w}}  {item:<{item_w}}  {r.outcome.value:<15}  {detail}".rstrip())

        lines.append("-" * (stage_w + item_w + 30))
        parts = [f"{o.value}: {n}" for o, n in self.counts().items()]
        lines.append(f"Total: {len(self.items)} ({', '.join(parts)})")
        return "\n".join(lines)
