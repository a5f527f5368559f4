"""
Persistence adapter - keeps the projects collection in a named durable slot.

A slot is a JSON file ``<data_dir>/<slot>.json`` holding the array of
projects. Every save is a full atomic overwrite. The active project id is kept
beside it in ``<slot>.active.json``.
"""
import json
import os
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

from itpm.io import atomic_write, read_text_file, DATA_JSON
from itpm.logs import get_logger
from itpm.models import Project
from itpm.recovery import SerializationError, FileOperationError
from itpm.serialization import parse_projects, projects_to_data

log = get_logger("persistence")

DEFAULT_SLOT = "itpm_projects"

class PersistenceAdapter:
    """Serializes the store to and from a single named slot."""

    def __init__(self, data_dir: Union[Path, str], slot: str = DEFAULT_SLOT):
        self.data_dir = Path(data_dir)
        self.slot = slot

    @property
    def path(self) -> Path:
        return self.data_dir / f"{self.slot}.json"

    @property
    def selection_path(self) -> Path:
        return self.data_dir / f"{self.slot}.active.json"

    def load(self) -> List[Project]:
        """
        Load the projects collection.

        An absent slot yields an empty collection. An unparsable slot also
        yields an empty collection; the unreadable file is moved aside so the
        next save does not destroy it.
        """
        try:
            text = read_text_file(self.path)
        except FileOperationError as e:
            log.warning(f"Cannot read slot '{self.slot}', starting empty: {e}")
            return []
        if text is None:
            log.debug(f"Slot '{self.slot}' is empty")
            return []

        try:
            projects = parse_projects(text)
        except SerializationError as e:
            log.warning(f"Slot '{self.slot}' is not a valid project document, starting empty: {e}")
            self._quarantine()
            return []

        log.info(f"Loaded {len(projects)} project(s) from {self.path}")
        return projects

    def save(self, projects: Iterable[Project]):
        atomic_write(DATA_JSON, self.path, projects_to_data(projects), create_dirs=True)

    def load_selection(self) -> Optional[str]:
        try:
            text = read_text_file(self.selection_path)
        except FileOperationError as e:
            log.warning(f"Cannot read active selection: {e}")
            return None
        if not text:
            return None
        try:
            value = json.loads(text)
        except ValueError:
            log.warning(f"Ignoring unparsable active selection in {self.selection_path}")
            return None
        return value.get('activeProjectId') if isinstance(value, dict) else None

    def save_selection(self, project_id: Optional[str]):
        atomic_write(DATA_JSON, self.selection_path, {'activeProjectId': project_id}, create_dirs=True)

    def clear(self):
        """Remove the slot and its selection entirely."""
        for path in (self.path, self.selection_path):
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                raise FileOperationError(f"Cannot remove {path}: {e}") from e
        log.info(f"Cleared slot '{self.slot}'")

    def _quarantine(self):
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        target = self.path.with_name(f"{self.path.name}.{stamp}.corrupt")
        try:
            os.replace(self.path, target)
            log.warning(f"Moved unreadable slot to {target}")
        except OSError as e:
            log.error(f"Could not move unreadable slot {self.path} aside: {e}")
