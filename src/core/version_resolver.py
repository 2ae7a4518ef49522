"""
Latest-build resolution for catalog repositories.

Catalog tags follow Red Hat's "<version>-<build>" convention, e.g.
"8.10-1028" or "4.9.0-2". Ordering rules:

1. Version segments compare numerically, left to right; a shorter
   sequence is padded with zeros ("8.10" == "8.10.0").
2. On equal segments, a tag with a build number is newer than one
   without; between two build numbers, the larger wins.
3. Remaining ties go to the build created most recently.
"""

import functools
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from constants import LATEST_STREAM
from core.models import (
    BuildNotFound,
    CatalogImage,
    ImageCoordinate,
    Resolution,
    ResolvedBuild,
)

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^(\d+)")
_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class VersionTag:
    """
    Parsed catalog tag.

    Supports tags like:
    - 8.10        -> segments (8, 10), build None
    - 8.10-1028   -> segments (8, 10), build 1028
    - v4.9.0-2    -> segments (4, 9, 0), build 2
    """

    segments: tuple[int, ...]
    build: Optional[int]

    @classmethod
    def parse(cls, tag: str) -> Optional["VersionTag"]:
        """
        Parse a tag into version segments and build number.

        Args:
            tag: Tag name from the catalog

        Returns:
            VersionTag, or None if the tag has no leading numeric segment
        """
        if not tag:
            return None

        main, _, build_part = _normalize(tag).partition("-")

        segments = []
        for part in main.split("."):
            match = _LEADING_INT.match(part)
            if not match:
                break
            segments.append(int(match.group(1)))

        if not segments:
            return None

        build = None
        if build_part:
            match = _LEADING_INT.match(build_part)
            if match:
                build = int(match.group(1))

        return cls(segments=tuple(segments), build=build)


def _normalize(tag: str) -> str:
    return tag.strip().lower().lstrip("v")


def compare_versions(a: VersionTag, b: VersionTag) -> int:
    """
    Compare two parsed tags.

    Returns:
        Positive if a is newer, negative if b is newer, zero if equal
    """
    width = max(len(a.segments), len(b.segments))
    for i in range(width):
        left = a.segments[i] if i < len(a.segments) else 0
        right = b.segments[i] if i < len(b.segments) else 0
        if left != right:
            return 1 if left > right else -1

    if a.build is not None and b.build is not None:
        return (a.build > b.build) - (a.build < b.build)
    if a.build is not None:
        return 1
    if b.build is not None:
        return -1
    return 0


def matches_stream(tag: str, stream: str) -> bool:
    """
    Check whether a tag belongs to a version stream.

    The stream is a prefix on segment boundaries: "4.9" accepts "4.9",
    "4.9.2" and "4.9-3" but not "4.10.0" or "4.90".
    """
    if stream == LATEST_STREAM:
        return True
    normalized_tag = _normalize(tag)
    normalized_stream = _normalize(stream)
    return (
        normalized_tag == normalized_stream
        or normalized_tag.startswith(normalized_stream + ".")
        or normalized_tag.startswith(normalized_stream + "-")
    )


@dataclass(frozen=True)
class _Candidate:
    image: CatalogImage
    tag: str
    version: VersionTag


def _created(image: CatalogImage) -> datetime:
    if image.created_at is None:
        return _OLDEST
    if image.created_at.tzinfo is None:
        return image.created_at.replace(tzinfo=timezone.utc)
    return image.created_at


def _compare_candidates(a: _Candidate, b: _Candidate) -> int:
    result = compare_versions(a.version, b.version)
    if result:
        return result
    a_created = _created(a.image)
    b_created = _created(b.image)
    return (a_created > b_created) - (a_created < b_created)


class VersionResolver:
    """Picks the latest build of a coordinate from a catalog image listing."""

    def resolve_latest(
        self,
        coordinate: ImageCoordinate,
        candidate_builds: Iterable[CatalogImage],
    ) -> Resolution:
        """
        Resolve the latest build for a coordinate.

        Args:
            coordinate: Monitored unit (architecture and stream are applied)
            candidate_builds: Builds listed for the repository

        Returns:
            ResolvedBuild, or BuildNotFound when no tag survives filtering
        """
        candidates = list(self._candidates(coordinate, candidate_builds))

        if not candidates:
            reason = (
                f"no tagged {coordinate.architecture} build matches stream "
                f"'{coordinate.stream}'"
            )
            logger.debug(f"{coordinate}: {reason}")
            return BuildNotFound(coordinate=coordinate, reason=reason)

        best = max(candidates, key=functools.cmp_to_key(_compare_candidates))
        logger.debug(
            f"{coordinate}: resolved {best.tag} from {len(candidates)} candidate tags"
        )

        return ResolvedBuild(
            build_id=best.image.build_id,
            display_version=best.tag,
            architecture=best.image.architecture or coordinate.architecture,
            content_digest=best.image.content_digest,
        )

    @staticmethod
    def _candidates(
        coordinate: ImageCoordinate,
        candidate_builds: Iterable[CatalogImage],
    ) -> Iterable[_Candidate]:
        """Flatten (build, tag) pairs that survive filtering and parse cleanly."""
        for image in candidate_builds:
            if image.architecture and image.architecture != coordinate.architecture:
                continue
            for tag in image.tags:
                if not tag or tag == LATEST_STREAM:
                    continue
                if not matches_stream(tag, coordinate.stream):
                    continue
                version = VersionTag.parse(tag)
                if version is None:
                    continue
                yield _Candidate(image=image, tag=tag, version=version)
