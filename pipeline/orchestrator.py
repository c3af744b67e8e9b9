"""
Library maintenance orchestrator.

Ties validation, analysis, tagging and relocation together. Nothing on disk
is changed for a folder unless StructureValidator rated it Good in the same
run, and every Bad result is reported according to its Reason.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from filesystem.audio_tags import MutagenTagReader
from filesystem.file_ops import FileSystemOperations, absolute_path
from filesystem.structure_analyzer import StructureAnalyzer
from filesystem.structure_validator import StructureValidator, unit_paths
from models.schemas import (
    OperationOutcome, Reason, Status, StructureAnalysis, ValidationResult
)
from pipeline.relocation import FolderRelocator
from pipeline.tagging import FolderTagger
from utils.exceptions import ConfigurationError
from utils.logging_config import log_function_call
from utils.scan_log import LogSummary, ScanLog, read_log_entries, summarize_log

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Routine outcomes the operator can silence with --quiet
QUIET_REASONS = {Reason.EMPTY, Reason.NO_MUSIC_FILES, Reason.SKIPPED}
# Outcomes that always deserve attention
LOUD_REASONS = {Reason.CORRUPTED_FILE, Reason.NOT_FOUND}

REPLAY_ACTIONS = ("tag", "move")


class LibraryCurator:
    """Entry point for validate / analyze / tag / move / merge / replay."""

    def __init__(
        self,
        config: Dict[str, Any],
        scan_log: Optional[ScanLog] = None,
        tag_reader=None,
        quiet: Optional[bool] = None,
        dry_run: Optional[bool] = None
    ):
        self.config = config
        filesystem_config = config['filesystem']
        organize_config = config['organize']

        self.skip_list = list(filesystem_config.get('skip_list') or [])
        self.quiet = organize_config.get('quiet', False) if quiet is None else quiet
        self.dry_run = organize_config.get('dry_run', False) if dry_run is None else dry_run
        self.scan_log = scan_log

        self.file_ops = FileSystemOperations(filesystem_config['audio_extensions'])
        self.tag_reader = tag_reader or MutagenTagReader()
        self.validator = StructureValidator(tag_reader=self.tag_reader, file_ops=self.file_ops)
        self.analyzer = StructureAnalyzer(file_ops=self.file_ops)
        self.tagger = FolderTagger(self.tag_reader, self.file_ops, scan_log)
        self.relocator = FolderRelocator(self.file_ops)

    def validate(self, path: PathLike, function: str = "validate") -> List[ValidationResult]:
        results = self.validator.validate_detailed(path, self.skip_list, self.scan_log, function)
        for result in results:
            self.report(result)
        return results

    def good_folders(self, path: PathLike, function: str = "validate") -> List[Path]:
        """Validate a tree and return its Good units (artist folders), deduplicated."""
        return unit_paths(self.validate(path, function), Status.GOOD)

    def analyze(self, path: PathLike, recursive: bool = False) -> List[StructureAnalysis]:
        if recursive:
            return self.analyzer.analyze_tree(path, self.skip_list, self.scan_log)
        return [self.analyzer.analyze(path)]

    def tag(self, path: PathLike) -> List[OperationOutcome]:
        return [self.tagger.tag_folder(folder, self.dry_run)
                for folder in self.good_folders(path, "tag")]

    def move(self, path: PathLike, destination_root: Optional[PathLike] = None) -> List[OperationOutcome]:
        destination = self._destination_root(destination_root)
        return [self.relocator.move(folder, destination, self.dry_run)
                for folder in self.good_folders(path, "move")]

    def merge(self, source: PathLike, target: PathLike) -> OperationOutcome:
        """
        Merge one artist folder into another. The source must validate as a
        Good artist folder in its own right.
        """
        source, target = absolute_path(source), absolute_path(target)
        result = self.validator.validate_folder(source)
        self.report(result)

        if not result.is_valid or result.unit_path != source:
            message = f"{source} is not a valid artist folder ({result.reason.value})"
            logger.warning(f"Not merging: {message}")
            return OperationOutcome(source=source, destination=target, action="merge",
                                    success=False, dry_run=self.dry_run, message=message)

        return self.relocator.merge(source, target, self.dry_run)

    @log_function_call
    def replay_log(
        self,
        log_path: PathLike,
        action: str,
        destination_root: Optional[PathLike] = None
    ) -> List[OperationOutcome]:
        """
        Re-apply ``action`` ('tag' or 'move') to the Good folders recorded in
        an earlier scan log. Each folder is revalidated first; folders that
        vanished or stopped validating are reported and left alone.
        """
        if action not in REPLAY_ACTIONS:
            raise ConfigurationError(f"Replay action must be one of {REPLAY_ACTIONS}, got '{action}'")
        destination = self._destination_root(destination_root) if action == "move" else None

        seen = set()
        outcomes = []
        for entry in read_log_entries(Path(log_path)):
            if entry.status != Status.GOOD.value or entry.path in seen:
                continue
            seen.add(entry.path)

            folder = Path(entry.path)
            result = self.validator.validate_folder(folder)
            self.report(result)
            if not result.is_valid:
                outcomes.append(OperationOutcome(
                    source=folder, action=action, success=False, dry_run=self.dry_run,
                    message=f"No longer valid: {result.reason.value}"
                ))
                continue

            if action == "tag":
                outcomes.append(self.tagger.tag_folder(result.unit_path, self.dry_run))
            else:
                outcomes.append(self.relocator.move(result.unit_path, destination, self.dry_run))

        logger.info(f"Replayed '{action}' on {len(outcomes)} folders from {log_path}")
        return outcomes

    def summarize(self, log_path: PathLike, status: Optional[str] = None) -> LogSummary:
        return summarize_log(Path(log_path), status)

    def report(self, result: ValidationResult):
        """Surface a validation result at a level that matches its Reason."""
        if result.is_valid:
            logger.debug(f"Good: {result.path} -> {result.unit_path}")
        elif result.reason in LOUD_REASONS:
            logger.warning(f"{result.reason.value}: {result.path} ({result.details})")
        elif result.reason in QUIET_REASONS:
            if not self.quiet:
                logger.info(f"{result.reason.value}: {result.path}")
        else:
            logger.info(f"{result.reason.value}: {result.unit_path} ({result.details})")

    def _destination_root(self, destination_root: Optional[PathLike]) -> Path:
        destination = destination_root or self.config['organize'].get('destination_root')
        if not destination:
            raise ConfigurationError("A destination root is required (argument or organize.destination_root)")
        return absolute_path(destination)
