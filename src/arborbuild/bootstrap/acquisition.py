"""
Acquisition of the build tool distributable.

A distributable is a zip archive named `<package>.<version>.zip`. The
directory-feed installer picks it from a feed directory and extracts it into
a per-version cache directory. Acquisition retries exactly once, against the
latest version already extracted, when the requested version cannot be
resolved.
"""

import asyncio
import logging
import re
import shutil
import tempfile
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from packaging.version import InvalidVersion, Version

from ..validation import BootstrapAcquisitionError

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "arborbuild" / "packages"


class VersionSelector(Enum):
    EXACT = "exact"
    LATEST_AVAILABLE = "latest available"
    LATEST_DOWNLOADED = "latest downloaded"


@dataclass(frozen=True)
class PackageRequest:
    """Which version of the distributable to install."""

    selector: VersionSelector
    version: Optional[Version] = None
    allow_prerelease: bool = False

    @classmethod
    def exact(cls, version: Version) -> "PackageRequest":
        return cls(VersionSelector.EXACT, version=version, allow_prerelease=True)

    @classmethod
    def latest_available(cls, allow_prerelease: bool = False) -> "PackageRequest":
        return cls(VersionSelector.LATEST_AVAILABLE, allow_prerelease=allow_prerelease)

    @classmethod
    def latest_downloaded(cls, allow_prerelease: bool = False) -> "PackageRequest":
        return cls(VersionSelector.LATEST_DOWNLOADED, allow_prerelease=allow_prerelease)

    def __str__(self) -> str:
        if self.selector is VersionSelector.EXACT:
            return f"version {self.version}"
        return self.selector.value


def parse_version(text: Optional[str]) -> Optional[Version]:
    """Parse a version string, None when it is missing or invalid."""
    if not text or not text.strip():
        return None
    try:
        return Version(text.strip())
    except InvalidVersion:
        logger.warning(f"Ignoring invalid package version '{text}'")
        return None


class DistributableInstaller(ABC):
    """Makes a version of the build tool available on disk."""

    @abstractmethod
    async def install(self, request: PackageRequest) -> Path:
        """
        Install the requested version.

        Returns:
            Directory holding the extracted distributable

        Raises:
            BootstrapAcquisitionError: If the version cannot be resolved
        """


class DirectoryFeedInstaller(DistributableInstaller):
    """
    Installs from a directory of `<package>.<version>.zip` archives.
    """

    def __init__(self, package_name: str, feed_dir: Optional[Path] = None,
                 cache_dir: Optional[Path] = None):
        self.package_name = package_name
        self.feed_dir = Path(feed_dir) if feed_dir else None
        self.cache_root = Path(cache_dir) if cache_dir else DEFAULT_CACHE_DIR
        self._archive_pattern = re.compile(rf"^{re.escape(package_name)}\.(?P<version>.+)\.zip$", re.IGNORECASE)

    @property
    def package_cache(self) -> Path:
        return self.cache_root / self.package_name

    def available_versions(self) -> Dict[Version, Path]:
        """Archives in the feed, by version."""
        if self.feed_dir is None or not self.feed_dir.is_dir():
            return {}
        versions: Dict[Version, Path] = {}
        for archive in self.feed_dir.iterdir():
            match = self._archive_pattern.match(archive.name)
            if not match or not archive.is_file():
                continue
            version = parse_version(match.group("version"))
            if version is not None:
                versions[version] = archive
        return versions

    def downloaded_versions(self) -> Dict[Version, Path]:
        """Extracted versions in the cache, by version."""
        if not self.package_cache.is_dir():
            return {}
        versions: Dict[Version, Path] = {}
        for directory in self.package_cache.iterdir():
            if not directory.is_dir() or directory.name.startswith("."):
                continue
            version = parse_version(directory.name)
            if version is not None:
                versions[version] = directory
        return versions

    async def install(self, request: PackageRequest) -> Path:
        if request.selector is VersionSelector.LATEST_DOWNLOADED:
            version = self._latest(self.downloaded_versions(), request.allow_prerelease)
            if version is None:
                raise BootstrapAcquisitionError(
                    f"No downloaded version of {self.package_name} in {self.package_cache}"
                )
            directory = self.downloaded_versions()[version]
            logger.info(f"Using downloaded {self.package_name} {version} from {directory}")
            return directory

        available = self.available_versions()
        if request.selector is VersionSelector.EXACT:
            version = request.version
        else:
            version = self._latest(available, request.allow_prerelease)

        if version is not None:
            cached = self.downloaded_versions().get(version)
            if cached is not None:
                logger.info(f"{self.package_name} {version} already extracted at {cached}")
                return cached

        if version is None or version not in available:
            raise BootstrapAcquisitionError(
                f"Could not resolve {self.package_name} {request} from feed {self.feed_dir}",
                version=str(version) if version else None,
            )

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._extract, available[version], version)

    @staticmethod
    def _latest(versions: Dict[Version, Path], allow_prerelease: bool) -> Optional[Version]:
        candidates = [v for v in versions if allow_prerelease or not v.is_prerelease]
        return max(candidates) if candidates else None

    def _extract(self, archive: Path, version: Version) -> Path:
        """Extract into a temporary sibling, then move into place."""
        target = self.package_cache / str(version)
        self.package_cache.mkdir(parents=True, exist_ok=True)
        logger.info(f"Extracting {archive} to {target}")

        with tempfile.TemporaryDirectory(dir=self.package_cache, prefix=".extract-") as staging:
            content = Path(staging) / "content"
            try:
                with zipfile.ZipFile(archive) as zf:
                    zf.extractall(content)
            except zipfile.BadZipFile as e:
                raise BootstrapAcquisitionError(f"Archive {archive} is not a valid zip file: {e}",
                                                version=str(version)) from e
            if target.exists():
                shutil.rmtree(target)
            shutil.move(str(content), str(target))

        _restore_executable_bits(target)
        return target


def _restore_executable_bits(directory: Path) -> None:
    """zipfile drops permissions; mark extensionless files and scripts executable."""
    for path in directory.rglob("*"):
        if path.is_file() and (path.suffix in ("", ".sh") or path.name.startswith("arbor-build")):
            path.chmod(path.stat().st_mode | 0o111)


async def acquire_build_tool(
    installer: DistributableInstaller,
    requested_version: Optional[str] = None,
    allow_prerelease: bool = False,
) -> Path:
    """
    Install the requested version, falling back once to the latest downloaded one.

    Args:
        installer: Installer to use
        requested_version: Exact version, or None/invalid for the latest available
        allow_prerelease: Whether prerelease versions qualify as "latest"

    Returns:
        Directory holding the distributable

    Raises:
        BootstrapAcquisitionError: If neither attempt resolves a version
    """
    version = parse_version(requested_version)
    request = PackageRequest.exact(version) if version else PackageRequest.latest_available(allow_prerelease)

    try:
        return await installer.install(request)
    except BootstrapAcquisitionError as e:
        logger.warning(f"Could not acquire {request}: {e}")
        logger.info(f"Retrying acquisition of {request} with the latest downloaded version")

    try:
        return await installer.install(PackageRequest.latest_downloaded(allow_prerelease))
    except BootstrapAcquisitionError as e:
        raise BootstrapAcquisitionError(
            f"Could not download {request}, verify it exists and that all sources are available",
            version=str(version) if version else None,
        ) from e
