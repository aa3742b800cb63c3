"""
TaskStore: load, validate, mutate and commit a tagged tasks file.

Every operation follows the same read-validate-write cycle:

    loaded = codec.load(path)               # document + version
    plan = validate_move(document, req)     # typed errors, nothing mutated
    updated, summary = apply_move(document, plan)
    writer.commit(path, updated, loaded.version)

If the file changed on disk between load and commit the writer raises
``ConcurrentModificationError``; the store reloads and re-validates up to
``config.max_retries`` times before surfacing it.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar, Union

from tagged_tasks.config import StoreConfig, get_config
from tagged_tasks.core.dependencies import DependencyReport, fix_dependencies, validate_dependencies
from tagged_tasks.core.errors.move import TagNotFoundError
from tagged_tasks.core.errors.store import ConcurrentModificationError
from tagged_tasks.core.models import TaskDocument
from tagged_tasks.core.move import MovePlan, MoveRequest, MoveSummary, apply_move, validate_move
from tagged_tasks.core.notifications import ChangeEvent, ChangeNotifier
from tagged_tasks.core.store import codec
from tagged_tasks.core.store.codec import LoadedDocument
from tagged_tasks.core.store.versioning import DocumentVersion
from tagged_tasks.core.store.writer import CommitResult, StoreWriter
from tagged_tasks.core.task_files import TaskFileGenerator

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class MoveResult:
    """Outcome of a committed move."""

    summary: MoveSummary
    path: Path
    version: DocumentVersion
    attempts: int = 1
    events: List[ChangeEvent] = field(default_factory=list)

    @property
    def warnings(self) -> List[str]:
        return list(self.summary.warnings)

    def to_dict(self) -> Dict[str, Any]:
        data = self.summary.to_dict()
        data["path"] = str(self.path)
        data["version"] = self.version.sha256
        return data


@dataclass
class _Mutation(Generic[T]):
    document: TaskDocument
    payload: T
    touched_tags: List[str]
    affected_ids: List[str] = field(default_factory=list)
    changed: bool = True


class TaskStore:
    """Operations on one tasks file.

    Args:
        path: Tasks file; defaults to ``config.resolve_tasks_path()``
        config: StoreConfig; defaults to the global configuration
        notifier: Receives change events after each commit
        file_generator: Task file hook; created from config when
            ``generate_task_files`` is on
        writer: Custom StoreWriter (mainly for tests)
    """

    def __init__(
        self,
        path: Union[str, Path, None] = None,
        config: Optional[StoreConfig] = None,
        notifier: Optional[ChangeNotifier] = None,
        file_generator: Optional[TaskFileGenerator] = None,
        writer: Optional[StoreWriter] = None,
    ) -> None:
        self.config = config or get_config()
        self.path = Path(path) if path is not None else self.config.resolve_tasks_path()
        self.notifier = notifier or ChangeNotifier()

        if file_generator is None and self.config.generate_task_files:
            output_dir = self.config.resolve_task_files_dir(self.path)
            file_generator = TaskFileGenerator(output_dir)

        self.writer = writer or StoreWriter(
            lock_timeout=self.config.lock_timeout,
            backup=self.config.backups_enabled,
            max_backups=self.config.max_backups,
            notifier=self.notifier,
            file_generator=file_generator,
        )

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def load(self) -> LoadedDocument:
        """Load and normalize the tasks file (never writes)."""
        return codec.load(self.path)

    def initialize(self, document: Optional[TaskDocument] = None) -> CommitResult:
        """
        Create the tasks file.

        Raises:
            ConcurrentModificationError: If the file already exists
        """
        if document is None:
            document = TaskDocument()
            document.create_partition(self.config.default_tag)
        return self.writer.commit(
            self.path,
            document,
            None,
            touched_tags=document.tag_names(),
            operation="initialize",
        )

    # ------------------------------------------------------------------
    # Read-validate-write cycle
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        mutate: Callable[[TaskDocument], "_Mutation[T]"],
    ) -> Tuple["_Mutation[T]", Optional[CommitResult], int]:
        attempts = 0
        while True:
            attempts += 1
            loaded = self.load()
            mutation = mutate(loaded.document)
            if not mutation.changed:
                return mutation, None, attempts
            try:
                commit = self.writer.commit(
                    self.path,
                    mutation.document,
                    loaded.version,
                    touched_tags=mutation.touched_tags,
                    operation=operation,
                    affected_ids=mutation.affected_ids,
                )
                return mutation, commit, attempts
            except ConcurrentModificationError:
                if attempts > self.config.max_retries:
                    raise
                logger.warning(
                    "%s: %s changed during the operation, retrying (%d/%d)",
                    operation,
                    self.path,
                    attempts,
                    self.config.max_retries,
                )

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    def plan_move(self, request: MoveRequest) -> MovePlan:
        """Validate ``request`` against the current file without writing."""
        return validate_move(self.load().document, request)

    def move(self, request: MoveRequest) -> MoveResult:
        """
        Validate, apply and commit a move.

        Raises:
            MoveError: Any validation failure (nothing is written)
            ConcurrentModificationError: File kept changing past ``max_retries``
        """

        def _mutate(document: TaskDocument) -> _Mutation[MoveSummary]:
            plan = validate_move(document, request)
            updated, summary = apply_move(document, plan)
            return _Mutation(
                document=updated,
                payload=summary,
                touched_tags=plan.touched_tags,
                affected_ids=summary.affected_ids,
            )

        mutation, commit, attempts = self._run("move", _mutate)
        return MoveResult(
            summary=mutation.payload,
            path=commit.path,
            version=commit.version,
            attempts=attempts,
            events=commit.events,
        )

    def move_tasks(
        self,
        task_ids: Any,
        source_tag: Optional[str] = None,
        destination_tag: Optional[str] = None,
        new_ids: Any = None,
        **flags: bool,
    ) -> MoveResult:
        """Build a MoveRequest from raw values and run it.

        ``source_tag`` defaults to the document's active tag.
        """
        if source_tag is None:
            source_tag = self.load().document.active_tag
        request = MoveRequest.create(task_ids, source_tag, destination_tag, new_ids, **flags)
        return self.move(request)

    # ------------------------------------------------------------------
    # Dependency maintenance
    # ------------------------------------------------------------------

    def _partition_tag(self, document: TaskDocument, tag: Optional[str]) -> str:
        name = tag or document.active_tag
        if not document.has_tag(name):
            raise TagNotFoundError(name, document.tag_names(), role="source")
        return name

    def validate_dependencies(self, tag: Optional[str] = None) -> DependencyReport:
        """Report missing, self and duplicate edges plus cycles for one tag."""
        document = self.load().document
        name = self._partition_tag(document, tag)
        return validate_dependencies(document.tags[name], name)

    def fix_dependencies(self, tag: Optional[str] = None) -> DependencyReport:
        """Remove missing, self and duplicate edges for one tag and commit."""

        def _mutate(document: TaskDocument) -> _Mutation[DependencyReport]:
            name = self._partition_tag(document, tag)
            report = fix_dependencies(document.tags[name], name)
            return _Mutation(
                document=document,
                payload=report,
                touched_tags=[name],
                affected_ids=sorted({issue.task_id for issue in report.issues}),
                changed=bool(report.issues),
            )

        mutation, _, _ = self._run("fix_dependencies", _mutate)
        return mutation.payload

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def tags(self) -> List[Dict[str, Any]]:
        """Summary of every tag: name, task count, active flag."""
        document = self.load().document
        active = document.active_tag
        return [
            {"name": name, "task_count": len(partition.tasks), "active": name == active}
            for name, partition in document.tags.items()
        ]

    def use_tag(self, name: str) -> str:
        """Persist ``name`` as the active tag."""

        def _mutate(document: TaskDocument) -> _Mutation[str]:
            if not document.has_tag(name):
                raise TagNotFoundError(name, document.tag_names(), role="target")
            changed = document.current_tag != name
            document.current_tag = name
            return _Mutation(document=document, payload=name, touched_tags=[], changed=changed)

        mutation, _, _ = self._run("use_tag", _mutate)
        logger.info("Active tag is now '%s'", name)
        return mutation.payload

    def create_tag(self, name: str, description: Optional[str] = None) -> None:
        """Create an empty tag (no-op when it exists)."""

        def _mutate(document: TaskDocument) -> _Mutation[None]:
            existed = document.has_tag(name)
            document.create_partition(name, description)
            return _Mutation(document=document, payload=None, touched_tags=[name], changed=not existed)

        self._run("create_tag", _mutate)
