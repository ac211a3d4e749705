"""Business logic services for redcoder.

Public API:
    ReleaseTranscodeService - Full pipeline: resolve, validate, transcode,
        assemble, create torrents and upload
    TranscodeOrchestrator - Concurrent transcoding of one release
    TranscodeEngine - Single file, single format transcoding

Protocols (for dependency injection):
    Prompter - User interaction (confirmations, renames, manual forms)
    RenamePolicy - Folder renaming when the path limit is exceeded
    TorrentToolProtocol - Torrent creation and verification
    TagCopierProtocol - Tag copying into transcoded files
    CommandRunnerProtocol - Piped external process execution
"""

from redcoder.services.assembler import MappingRenamePolicy, OutputAssembler, RenamePolicy
from redcoder.services.engine import TranscodeEngine
from redcoder.services.formats import existing_formats, resolve_target_formats
from redcoder.services.orchestrator import OrchestrationResult, TranscodeOrchestrator
from redcoder.services.pipeline import ReleaseTranscodeService
from redcoder.services.prompts import Prompter, ScriptedPrompter
from redcoder.services.tagger import TagCopierProtocol, TagCopyService
from redcoder.services.tools import CommandRunnerProtocol, PipedCommandRunner
from redcoder.services.torrent import TorrentTool, TorrentToolProtocol
from redcoder.services.validator import ReleaseValidator, ValidationReport

__all__ = [
    "CommandRunnerProtocol",
    "MappingRenamePolicy",
    "OrchestrationResult",
    "OutputAssembler",
    "PipedCommandRunner",
    "Prompter",
    "ReleaseTranscodeService",
    "ReleaseValidator",
    "RenamePolicy",
    "ScriptedPrompter",
    "TagCopierProtocol",
    "TagCopyService",
    "TorrentTool",
    "TorrentToolProtocol",
    "TranscodeEngine",
    "TranscodeOrchestrator",
    "ValidationReport",
    "existing_formats",
    "resolve_target_formats",
]
