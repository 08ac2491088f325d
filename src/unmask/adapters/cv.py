"""Resume PDF processor."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any, Callable

import structlog

from ..core.errors import PreconditionError, ProcessorError
from ..pdf_utils import extract_markdown

EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
PHONE_RE = re.compile(r"\+?\d[\d\s().-]{7,}\d")
LINKEDIN_RE = re.compile(r"(?:https?://)?(?:[a-z]{2,3}\.)?linkedin\.com/in/[\w%-]+/?", re.IGNORECASE)
GITHUB_RE = re.compile(r"(?:https?://)?(?:www\.)?github\.com/[A-Za-z0-9-]+/?", re.IGNORECASE)
URL_RE = re.compile(r"https?://[^\s)>\]]+", re.IGNORECASE)
HEADING_RE = re.compile(r"^\s*#{1,6}\s*(?P<title>.+?)\s*#*\s*$")
EXPERIENCE_RE = re.compile(
    r"^(?P<title>[^|@]+?)\s+(?:at|@|\|)\s+(?P<company>[^(,|]+?)"
    r"(?:\s*[(,|]\s*(?P<start>\d{4})\s*[-–]\s*(?P<end>\d{4}|present|current|now)\)?)?\s*$",
    re.IGNORECASE,
)

SECTION_ALIASES = {
    "summary": ("summary", "profile", "about", "about me", "objective"),
    "experience": ("experience", "work experience", "professional experience", "employment"),
    "education": ("education",),
    "skills": ("skills", "technical skills", "technologies"),
    "languages": ("languages",),
}


def _clean(line: str) -> str:
    line = HEADING_RE.sub(r"\g<title>", line)
    return re.sub(r"[*_`]+", "", line).strip(" -•\t")


def _section_key(line: str) -> str | None:
    text = _clean(line).rstrip(":").lower()
    for key, aliases in SECTION_ALIASES.items():
        if text in aliases:
            return key
    return None


def split_sections(markdown: str) -> dict[str, list[str]]:
    """Group non-empty lines by the resume section they fall under."""
    sections: dict[str, list[str]] = {"header": []}
    current = "header"
    for raw in markdown.splitlines():
        if not raw.strip():
            continue
        key = _section_key(raw)
        if key:
            current = key
            sections.setdefault(current, [])
            continue
        sections.setdefault(current, []).append(_clean(raw))
    return sections


def _first(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    return match.group(0).rstrip("/") if match else None


def _parse_experiences(lines: list[str]) -> list[dict[str, Any]]:
    experiences: list[dict[str, Any]] = []
    for line in lines:
        match = EXPERIENCE_RE.match(line)
        if not match:
            if experiences and line:
                description = experiences[-1]["description"]
                experiences[-1]["description"] = f"{description} {line}".strip()
            continue
        end = match.group("end")
        ongoing = bool(end) and not end.isdigit()
        experiences.append(
            {
                "title": match.group("title").strip(),
                "company": match.group("company").strip(),
                "start_year": int(match.group("start")) if match.group("start") else None,
                "end_year": int(end) if end and end.isdigit() else None,
                "ongoing": ongoing,
                "description": "",
            }
        )
    return experiences


def _parse_skills(lines: list[str]) -> list[str]:
    skills: list[str] = []
    for line in lines:
        _, _, tail = line.rpartition(":")
        for item in re.split(r"[,;•·|]", tail):
            item = item.strip()
            if item and item.lower() not in {skill.lower() for skill in skills}:
                skills.append(item)
    return skills


def parse_resume(markdown: str) -> dict[str, Any]:
    """Heuristically extract contact details, experiences and skills."""
    sections = split_sections(markdown)
    header = sections.get("header", [])

    name = next(
        (
            line
            for line in header
            if not EMAIL_RE.search(line)
            and not URL_RE.search(line)
            and not PHONE_RE.search(line)
            and 1 < len(line.split()) <= 5
        ),
        None,
    )
    first_name, _, last_name = (name or "").partition(" ")
    job_title = None
    if name and name in header:
        following = header[header.index(name) + 1 :]
        job_title = next(
            (line for line in following if not EMAIL_RE.search(line) and not PHONE_RE.search(line)
             and not URL_RE.search(line) and len(line) < 80),
            None,
        )

    links = [url.rstrip("/") for url in URL_RE.findall(markdown)]
    website = next(
        (url for url in links if "linkedin.com" not in url and "github.com" not in url),
        None,
    )

    return {
        "name": name,
        "first_name": first_name or None,
        "last_name": last_name or None,
        "email": _first(EMAIL_RE, markdown),
        "phone": (_first(PHONE_RE, "\n".join(header)) or None),
        "linkedin": _first(LINKEDIN_RE, markdown),
        "github": _first(GITHUB_RE, markdown),
        "website": website,
        "job_title": job_title,
        "summary": " ".join(sections.get("summary", [])) or None,
        "experiences": _parse_experiences(sections.get("experience", [])),
        "education": list(sections.get("education", [])),
        "skills": _parse_skills(sections.get("skills", [])),
        "languages": _parse_skills(sections.get("languages", [])),
        "text_length": len(markdown),
    }


class PdfCvProcessor:
    """Extract a structured CV payload from a PDF on disk."""

    def __init__(self, extract: Callable[[str | Path], str] = extract_markdown):
        self._extract = extract
        self._logger = structlog.get_logger(__name__)

    async def process(self, file_path: str) -> dict[str, Any]:
        if not file_path:
            raise PreconditionError("CV file path is required")
        return await asyncio.to_thread(self.process_file, file_path)

    def process_file(self, file_path: str | Path) -> dict[str, Any]:
        path = Path(file_path)
        if not path.exists():
            raise PreconditionError(f"CV file not found: {path}")
        markdown = self._extract(path)
        if not markdown.strip():
            raise ProcessorError(f"No text could be extracted from {path.name}")
        payload = parse_resume(markdown)
        payload["source_file"] = path.name
        self._logger.info(
            "cv.parsed",
            file=path.name,
            experiences=len(payload["experiences"]),
            skills=len(payload["skills"]),
        )
        return payload


__all__ = ["PdfCvProcessor", "parse_resume", "split_sections"]
