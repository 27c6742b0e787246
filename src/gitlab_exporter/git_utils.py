"""Git repository operations using git CLI."""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from pathlib import Path

from .exceptions import ExportError, ReferenceNotFoundError
from .models import MergeBase

logger: logging.Logger = logging.getLogger(__name__)


def _inject_token(url: str, token: str | None, prefix: str = "") -> str:
    """Inject authentication token into HTTPS URL.

    Args:
        url: The URL to modify
        token: Token to inject (if None, returns original URL)
        prefix: Prefix before token (e.g., "oauth2:" for GitLab)

    Returns:
        URL with token injected, or original if not HTTPS or no token
    """
    if not token or not url.startswith("https://"):
        return url
    return url.replace("https://", f"https://{prefix}{token}@")


def _sanitize_error(error: str, tokens: list[str | None]) -> str:
    """Replace tokens in an error message with ***TOKEN***."""
    result = error
    for token in tokens:
        if token:
            result = result.replace(token, "***TOKEN***")
    return result


def clone_mirror(source_http_url: str, source_token: str | None) -> str:
    """Create a temporary mirror clone of the source repository.

    Args:
        source_http_url: Repository HTTPS URL
        source_token: GitLab token (may be None for public repos)

    Returns:
        Path to the temporary clone directory

    Raises:
        ExportError: If cloning fails
    """
    temp_clone_path = tempfile.mkdtemp(prefix="gitlab_export_")
    source_url = _inject_token(source_http_url, source_token, prefix="oauth2:")

    try:
        result = subprocess.run(  # noqa: S603
            ["git", "clone", "--mirror", source_url, temp_clone_path],
            check=False,
            capture_output=True,
            text=True,
        )
    except OSError as e:
        cleanup_git_clone(temp_clone_path)
        msg = f"Failed to clone repository: {_sanitize_error(str(e), [source_token])}"
        raise ExportError(msg) from e

    if result.returncode != 0:
        cleanup_git_clone(temp_clone_path)
        msg = f"Failed to clone repository: {_sanitize_error(result.stderr, [source_token])}"
        raise ExportError(msg)

    logger.info(f"Cloned {source_http_url} to {temp_clone_path}")
    return temp_clone_path


def cleanup_git_clone(clone_path: str) -> None:
    """Clean up temporary git clone directory."""
    if clone_path and Path(clone_path).exists():
        try:
            shutil.rmtree(clone_path)
            logger.debug(f"Cleaned up git clone at {clone_path}")
        except OSError as e:
            logger.warning(f"Failed to clean up git clone at {clone_path}: {e}")


class GitRepository:
    """RepositoryData backed by a local (bare or working) clone."""

    def __init__(self, path: str | Path) -> None:
        self.path: Path = Path(path)

    def _git(self, *args: str) -> subprocess.CompletedProcess[str]:
        return subprocess.run(  # noqa: S603
            ["git", *args],
            cwd=self.path,
            check=True,
            capture_output=True,
            text=True,
        )

    def rev_parse(self, ref: str) -> str:
        """Resolve a ref to a commit sha.

        Raises:
            ReferenceNotFoundError: If the ref does not name a commit
        """
        try:
            result = self._git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        except subprocess.CalledProcessError as e:
            msg = f"Reference not found: {ref}"
            raise ReferenceNotFoundError(msg) from e
        return result.stdout.strip()

    def merge_base(self, head_ref: str, base_ref: str) -> MergeBase:
        """Return the merge base of two refs, or a not-found result."""
        try:
            self.rev_parse(head_ref)
            self.rev_parse(base_ref)
        except ReferenceNotFoundError as e:
            return MergeBase.not_found(str(e))

        try:
            result = self._git("merge-base", head_ref, base_ref)
        except subprocess.CalledProcessError as e:
            # Exit status 1 with no output means the histories are unrelated
            return MergeBase.not_found(f"No merge base for {head_ref} and {base_ref}: {e.stderr.strip()}")

        return MergeBase(result.stdout.strip())
