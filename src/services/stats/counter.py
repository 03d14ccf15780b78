"""
Baseline + Deltas - мгновенный счётчик цитат с отложенной сверкой.

effective = baseline + pending_adds - pending_deletes

- Локальные добавления/удаления меняют только дельты (UI обновляется сразу)
- Сверка с сервером переносит подтверждённое в baseline, не давая счётчику
  прыгнуть назад, пока локальное намерение ещё не дошло до сервера

All operations are synchronous: the triple is always updated as one unit
between two awaits.
"""

from dataclasses import dataclass


@dataclass
class BaselineDeltaCounter:
    """Eventually consistent counter anchored to the last server value."""

    baseline_total: int = 0
    pending_adds: int = 0
    pending_deletes: int = 0

    def __post_init__(self) -> None:
        self.baseline_total = max(0, int(self.baseline_total or 0))
        self.pending_adds = max(0, int(self.pending_adds or 0))
        self.pending_deletes = min(
            max(0, int(self.pending_deletes or 0)), self.baseline_total + self.pending_adds
        )

    @property
    def effective_total(self) -> int:
        return self.baseline_total + self.pending_adds - self.pending_deletes

    def on_local_add(self) -> int:
        self.pending_adds += 1
        return self.effective_total

    def on_local_delete_optimistic(self) -> int:
        """No-op at zero: the effective total never goes negative."""
        if self.effective_total > 0:
            self.pending_deletes += 1
        return self.effective_total

    def on_local_delete_reverted(self) -> int:
        """Undo an optimistic delete whose server call failed."""
        self.pending_deletes = max(0, self.pending_deletes - 1)
        return self.effective_total

    def reconcile_with_server(self, server_total: int) -> int:
        """
        Re-anchor baseline to the server count

        A server gain retires that many pending adds; a server loss retires
        that many pending deletes (both floored at 0). Deltas the server has
        not caught up with yet stay pending.

        Returns:
            Effective total after reconciliation
        """
        server_total = max(0, int(server_total))
        server_diff = server_total - self.baseline_total

        if server_diff > 0:
            self.pending_adds = max(0, self.pending_adds - server_diff)
        elif server_diff < 0:
            self.pending_deletes = max(0, self.pending_deletes + server_diff)

        self.baseline_total = server_total
        return self.effective_total

    def snapshot(self) -> dict:
        return {
            "baseline_total": self.baseline_total,
            "pending_adds": self.pending_adds,
            "pending_deletes": self.pending_deletes,
            "total_quotes": self.effective_total,
        }
