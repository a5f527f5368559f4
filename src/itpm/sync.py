"""
Change propagation - after every store mutation, persist the full store and
then recompute all four projections for the active project.
"""
from typing import Callable, List, Optional

from itpm.logs import get_logger
from itpm.projector import Projections
from itpm.recovery import FatalError

log = get_logger("sync")

Renderer = Callable[[Projections], None]

class ChangePropagator:
    """Single-pass, synchronous persist-then-reproject protocol."""

    def __init__(self, store, selection, adapter, projector):
        self.store = store
        self.selection = selection
        self.adapter = adapter
        self.projector = projector
        self.latest: Optional[Projections] = None
        self._renderers: List[Renderer] = []
        self._propagating = False

    def subscribe(self, renderer: Renderer):
        self._renderers.append(renderer)

    def unsubscribe(self, renderer: Renderer):
        if renderer in self._renderers:
            self._renderers.remove(renderer)

    def detach_all(self):
        self._renderers.clear()

    def propagate(self, persist: bool = True) -> Projections:
        """
        Persist (unless ``persist`` is False), then re-project every view and
        hand the result to the subscribed renderers.

        Raises:
            FatalError: a mutation was attempted while propagating
        """
        if self._propagating:
            raise FatalError("Store mutated during change propagation")
        self._propagating = True
        try:
            self.selection.reconcile()
            if persist:
                self.adapter.save(self.store.projects)
                self.adapter.save_selection(self.selection.project_id)
            self.latest = self.projector.project()
            log.debug(f"Re-projected views for project {self.selection.project_id}")
            for renderer in list(self._renderers):
                renderer(self.latest)
        finally:
            self._propagating = False
        return self.latest

    def __call__(self):
        self.propagate()
