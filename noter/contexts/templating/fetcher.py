"""
Template package fetcher.

Downloads template packages from GitHub (latest release, or a branch when the
repository record pins one) and installs them as local Typst packages:

    <typst_packages_dir>/<package_name>/<version>/

Fetching never touches the config; callers record the installed version with
record_installed_version() and save it.
"""

import io
import shutil
import tempfile
import tomllib
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from noter.contexts.configuration.schema import Config, TemplateRepository
from noter.contexts.templating.exceptions import FetchError
from noter.contexts.templating.logger import _log_debug, _log_info, log_install_result
from noter.contexts.templating.version_resolver import MANIFEST_NAME, version_key
from noter.utils.errors import NoterIOError

GITHUB_API = "https://api.github.com"


@dataclass(frozen=True)
class ReleaseInfo:
    """Latest release of a repository."""

    tag_name: str
    version: str
    zipball_url: str
    html_url: Optional[str] = None


@dataclass(frozen=True)
class InstallResult:
    """
    Attributes:
        alias: Repository alias that was installed
        version: Installed version
        package_dir: Directory the package was extracted into
        was_cached: The version was already present and nothing was downloaded
    """

    alias: str
    version: str
    package_dir: Path
    was_cached: bool


def repository_slug(repository: str) -> str:
    """
    Normalize a repository reference to "owner/repo".

    Examples:
        repository_slug("https://github.com/HollowNumber/dtu-note-template.git")
        # "HollowNumber/dtu-note-template"
    """
    slug = repository.strip()
    for prefix in ("https://github.com/", "http://github.com/", "github.com/"):
        if slug.startswith(prefix):
            slug = slug[len(prefix):]
    slug = slug.rstrip("/")
    if slug.endswith(".git"):
        slug = slug[: -len(".git")]
    return slug


def is_newer(current: Optional[str], latest: str) -> bool:
    """
    Compare dotted versions.

    Returns:
        True if latest > current (or nothing is installed)
    """
    if not current:
        return True

    current_key = version_key(current)
    latest_key = version_key(latest)
    if current_key is None or latest_key is None:
        return current != latest

    width = max(len(current_key), len(latest_key))
    current_key += (0,) * (width - len(current_key))
    latest_key += (0,) * (width - len(latest_key))
    return latest_key > current_key


def _archive_root(archive: zipfile.ZipFile) -> str:
    """Common top-level folder of a GitHub zipball ("owner-repo-sha/"), or ""."""
    roots = {name.split("/", 1)[0] for name in archive.namelist() if name}
    if len(roots) == 1:
        root = roots.pop()
        if any(name.startswith(f"{root}/") for name in archive.namelist()):
            return f"{root}/"
    return ""


def _manifest_version(archive: zipfile.ZipFile, root: str) -> Optional[str]:
    try:
        data = tomllib.loads(archive.read(f"{root}{MANIFEST_NAME}").decode("utf-8"))
    except (KeyError, tomllib.TOMLDecodeError, UnicodeDecodeError):
        return None
    package = data.get("package")
    if not isinstance(package, dict):
        return None
    version = package.get("version")
    return version if isinstance(version, str) and version else None


def extract_package(archive: zipfile.ZipFile, root: str, destination: Path) -> None:
    """
    Extract archive members below `root` into `destination`, stripping `root`.

    Members that would land outside `destination` are skipped.
    """
    destination = destination.resolve()
    for info in archive.infolist():
        if not info.filename.startswith(root) or info.is_dir():
            continue

        relative = info.filename[len(root):]
        if not relative:
            continue

        target = (destination / relative).resolve()
        if destination not in target.parents:
            _log_debug(f"Skipping archive member outside package: {info.filename}")
            continue

        target.parent.mkdir(parents=True, exist_ok=True)
        with archive.open(info) as source, open(target, "wb") as sink:
            shutil.copyfileobj(source, sink)


class TemplateFetcher:
    """
    Installs template packages from GitHub.

    Args:
        client: httpx client to use (a short-lived client is created per request otherwise)
        timeout_seconds: HTTP request timeout
    """

    def __init__(self, client: Optional[httpx.Client] = None, timeout_seconds: int = 10):
        self._client = client
        self.timeout_seconds = timeout_seconds

    def _get(self, url: str, repository: str) -> httpx.Response:
        client = self._client or httpx.Client(timeout=self.timeout_seconds, follow_redirects=True)
        try:
            response = client.get(url, headers={"Accept": "application/vnd.github+json"})
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"GitHub returned {e.response.status_code} for {url}", repository, e
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Request to {url} failed", repository, e) from e
        finally:
            if self._client is None:
                client.close()

    def latest_release(self, repository: str) -> ReleaseInfo:
        """
        Fetch the latest release of "owner/repo".

        Raises:
            FetchError: On HTTP failure or an unexpected response
        """
        slug = repository_slug(repository)
        url = f"{GITHUB_API}/repos/{slug}/releases/latest"
        data = self._get(url, slug).json()

        try:
            tag_name = data["tag_name"]
            zipball_url = data["zipball_url"]
        except (KeyError, TypeError) as e:
            raise FetchError("Unexpected release response", slug, e) from e

        return ReleaseInfo(
            tag_name=tag_name,
            version=tag_name.lstrip("v"),
            zipball_url=zipball_url,
            html_url=data.get("html_url"),
        )

    def download_archive(self, url: str, repository: str) -> zipfile.ZipFile:
        response = self._get(url, repository)
        try:
            return zipfile.ZipFile(io.BytesIO(response.content))
        except zipfile.BadZipFile as e:
            raise FetchError("Downloaded archive is not a valid zip file", repository, e) from e

    def install(self, alias: str, config: Config, force: bool = False) -> InstallResult:
        """
        Install the newest package for a repository alias.

        Args:
            alias: Key in config.template_repositories
            config: Loaded config (for the packages directory)
            force: Reinstall even if the version is already present

        Returns:
            InstallResult

        Raises:
            FetchError: Unknown/disabled alias, HTTP failure, or a bad archive
            NoterIOError: The package cannot be written
        """
        repository = config.template_repositories.get(alias)
        if repository is None:
            raise FetchError(f"Repository alias '{alias}' is not configured", alias)
        if not repository.enabled:
            raise FetchError(f"Repository alias '{alias}' is disabled", repository.repository)

        slug = repository_slug(repository.repository)
        package_root = Path(config.paths.typst_packages_dir).expanduser() / (
            repository.package_name or alias
        )

        if repository.branch:
            _log_info(f"Fetching {slug} branch {repository.branch}")
            url = f"{GITHUB_API}/repos/{slug}/zipball/{repository.branch}"
            version = None
        else:
            release = self.latest_release(slug)
            _log_info(f"Latest release of {slug}: {release.tag_name}")
            url = release.zipball_url
            version = release.version

            cached = package_root / version
            if cached.is_dir() and not force:
                result = InstallResult(alias, version, cached, was_cached=True)
                log_install_result(result)
                return result

        archive = self.download_archive(url, slug)
        root = _archive_root(archive)
        version = _manifest_version(archive, root) or version
        if not version:
            raise FetchError(f"Cannot determine the package version of branch {repository.branch}", slug)

        target = package_root / version
        was_cached = self._install_archive(archive, root, target, force)
        result = InstallResult(alias, version, target, was_cached=was_cached)
        log_install_result(result)
        return result

    def _install_archive(self, archive: zipfile.ZipFile, root: str, target: Path, force: bool) -> bool:
        """Extract into `target` via a temporary sibling. Returns True if it was already present."""
        if target.is_dir() and not force:
            return True

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryDirectory(dir=target.parent, prefix=f".{target.name}.") as tmp:
                staging = Path(tmp) / "package"
                staging.mkdir()
                extract_package(archive, root, staging)

                if target.exists():
                    shutil.rmtree(target)
                staging.replace(target)
        except OSError as e:
            raise NoterIOError("Failed to install template package", path=target, original_error=e) from e

        return False


def repository_status(repository: TemplateRepository, latest: Optional[str]) -> str:
    """Short status line for a repository record."""
    if latest is None:
        return f"{repository.version or 'not installed'}"
    if is_newer(repository.version, latest):
        return f"{repository.version or 'not installed'} -> {latest} available"
    return f"{repository.version} (up to date)"
