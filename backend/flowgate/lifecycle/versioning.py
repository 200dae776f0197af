# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Semantic version codes for workflow versions (`major.minor.patch`).
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from flowgate.core.logging import get_service_logger

logger = get_service_logger("versioning")

VERSION_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


@dataclass(frozen=True, order=True)
class VersionCode:
    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, code: str) -> "VersionCode":
        match = VERSION_PATTERN.match(code or "")
        if not match:
            raise ValueError(f"Not a semantic version code: {code!r}")
        return cls(*(int(part) for part in match.groups()))

    @classmethod
    def try_parse(cls, code: Optional[str]) -> Optional["VersionCode"]:
        try:
            return cls.parse(code)
        except ValueError:
            return None

    def next_patch(self) -> "VersionCode":
        return VersionCode(self.major, self.minor, self.patch + 1)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


INITIAL_VERSION = VersionCode(1, 0, 0)


def next_version_code(latest: Optional[str]) -> str:
    """Patch after `latest`; restarts at 1.0.0 when `latest` is absent or not semver"""
    current = VersionCode.try_parse(latest)
    if current is None:
        if latest:
            logger.warning(f"Latest version code {latest!r} is not semver, restarting at {INITIAL_VERSION}")
        return str(INITIAL_VERSION)
    return str(current.next_patch())


def successor_version_code(published: str, existing: Iterable[str]) -> str:
    """
    Code for the draft created after publishing `published`.

    Normally its next patch. When that code is already taken, the patch after
    the highest existing code is used instead.
    """
    taken = set(existing)
    candidate = next_version_code(published)
    if candidate not in taken:
        return candidate

    parsed = [code for code in (VersionCode.try_parse(value) for value in taken) if code]
    highest = max(parsed, default=INITIAL_VERSION)
    return str(highest.next_patch())
