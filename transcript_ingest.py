# Copyright (c) 2026 Mark Menkhus <mark.menkhus@gmail.com>
# SPDX-License-Identifier: MIT
"""
transcript_ingest.py - Read transcript files and ZIP archives into parse results

Every file (and every member of a ZIP archive) is read and parsed on its
own. A file that cannot be read yields a FileResult carrying the error and
no transcripts; its siblings are unaffected.

Usage:
    from transcript_ingest import parse_uploaded_files, ingestion_summary

    results = parse_uploaded_files([Path("logs.zip"), Path("chat.txt")])
    for status in ingestion_summary(results):
        print(status["filename"], status["status"])
"""

import io
import sys
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Union

from transcript_parser import parse_transcript_content


SUPPORTED_EXTENSIONS = (".txt", ".json", ".zip")
ARCHIVE_MEMBER_EXTENSIONS = (".txt", ".json")
MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB


@dataclass
class RawFile:
    """A file payload that has not been parsed yet."""
    name: str
    content: Union[bytes, str]

    @classmethod
    def from_path(cls, path: Path) -> 'RawFile':
        return cls(name=path.name, content=path.read_bytes())

    @property
    def size(self) -> int:
        if isinstance(self.content, bytes):
            return len(self.content)
        return len(self.content.encode("utf-8"))


@dataclass
class FileResult:
    """Outcome of reading and parsing one file."""
    filename: str
    transcripts: list = field(default_factory=list)
    error: Optional[str] = None

    @property
    def status(self) -> str:
        return "error" if self.error else "success"

    def to_status(self) -> dict:
        d = {
            "filename": self.filename,
            "transcriptCount": len(self.transcripts),
            "status": self.status,
        }
        if self.error:
            d["error"] = self.error
        return d


def is_supported_file(name: str) -> bool:
    return name.lower().endswith(SUPPORTED_EXTENSIONS)


def decode_content(content: Union[bytes, str]) -> str:
    if isinstance(content, bytes):
        return content.decode("utf-8-sig", errors="replace")
    return content


def _failed(filename: str, error: str) -> FileResult:
    print(f"Warning: {filename}: {error}", file=sys.stderr)
    return FileResult(filename=filename, transcripts=[], error=error)


def parse_zip_file(raw: RawFile, verbose: bool = False) -> List[FileResult]:
    """Parse every .txt/.json member of a ZIP archive as its own file."""
    data = raw.content if isinstance(raw.content, bytes) else raw.content.encode("utf-8")
    results = []

    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        for info in zf.infolist():
            name = info.filename
            if info.is_dir() or name.startswith("__MACOSX/"):
                continue
            if not name.lower().endswith(ARCHIVE_MEMBER_EXTENSIONS):
                continue
            if info.file_size > MAX_FILE_SIZE:
                results.append(_failed(name, f"File exceeds {MAX_FILE_SIZE // (1024 * 1024)}MB limit"))
                continue
            try:
                content = decode_content(zf.read(info))
                results.append(FileResult(
                    filename=name,
                    transcripts=parse_transcript_content(content, name, verbose=verbose),
                ))
            except Exception as e:
                results.append(_failed(name, str(e) or e.__class__.__name__))

    return results


def parse_uploaded_file(item: Union[RawFile, Path, str], verbose: bool = False) -> List[FileResult]:
    """Read and parse one input; archives expand to one result per member."""
    name = item.name if isinstance(item, RawFile) else Path(item).name

    if not is_supported_file(name):
        return [_failed(name, "Unsupported file type. Use .txt, .json or .zip files")]

    try:
        raw = item if isinstance(item, RawFile) else RawFile.from_path(Path(item))
        if raw.size > MAX_FILE_SIZE:
            return [_failed(name, f"File exceeds {MAX_FILE_SIZE // (1024 * 1024)}MB limit")]

        if name.lower().endswith(".zip"):
            return parse_zip_file(raw, verbose=verbose)

        content = decode_content(raw.content)
        return [FileResult(
            filename=name,
            transcripts=parse_transcript_content(content, name, verbose=verbose),
        )]
    except Exception as e:
        return [_failed(name, str(e) or e.__class__.__name__)]


def parse_uploaded_files(files: list, verbose: bool = False) -> List[FileResult]:
    """Parse a batch of inputs. One result per file or archive member."""
    results = []
    for item in files:
        results.extend(parse_uploaded_file(item, verbose=verbose))
    return results


def ingestion_summary(results: List[FileResult]) -> List[dict]:
    return [r.to_status() for r in results]
