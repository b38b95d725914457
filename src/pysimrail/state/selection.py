"""Selection state machine.

States are ``None`` and ``Selected(id)``. The selected id always refers to
a train present in the store.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pysimrail.models.train import TrainEntity
from pysimrail.state.store import EntityStore

_logger = logging.getLogger(__name__)


class SelectionManager:
    """Track the focused train.

    ``on_selected(train_id)`` runs on every entry into ``Selected(id)``,
    re-selection of the current id included. ``on_cleared()`` runs on every
    transition back to ``None``.
    """

    def __init__(
        self,
        store: EntityStore,
        *,
        on_selected: Callable[[str], None],
        on_cleared: Callable[[], None],
    ) -> None:
        self._store = store
        self._on_selected = on_selected
        self._on_cleared = on_cleared
        self._selected_id: str | None = None

    @property
    def selected_id(self) -> str | None:
        return self._selected_id

    @property
    def selected_train(self) -> TrainEntity | None:
        """Live record of the selected train."""
        if self._selected_id is None:
            return None
        return self._store.get(self._selected_id)

    def select(self, train_id: str) -> bool:
        """Enter ``Selected(train_id)``.

        Returns ``False`` (state unchanged) when the train is not in the store.
        """
        if train_id not in self._store:
            _logger.debug("Ignoring selection of unknown train id=%s", train_id)
            return False
        self._selected_id = train_id
        _logger.debug("Selected train id=%s", train_id)
        self._on_selected(train_id)
        return True

    def deselect(self) -> None:
        if self._selected_id is None:
            return
        _logger.debug("Deselected train id=%s", self._selected_id)
        self._selected_id = None
        self._on_cleared()

    def on_store_changed(self) -> None:
        """Drop the selection if its train left the store."""
        if self._selected_id is not None and self._selected_id not in self._store:
            _logger.debug("Selected train id=%s left the store", self._selected_id)
            self._selected_id = None
            self._on_cleared()
