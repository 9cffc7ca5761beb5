"""Git loader: local clones kept identical to their upstream branch.

Security requirements:
- shell=False always (no command injection).
- Remote base scheme whitelist: https://, http://, git@ only.
- GIT_TOKEN injected into the clone and fetch URLs in-memory only; never logged,
  never in error output, never written to the clone's .git/config.

Sync model: a missing clone is cloned at the branch; an existing clone is
fetched and hard-reset to FETCH_HEAD. Local modifications are always discarded.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import urllib.parse
from pathlib import Path

from brain.config import validate_remote_base
from brain.errors import RemoteUnavailable, RepositoryCorrupt
from brain.ingest.base import SourceLoader
from brain.ingest.chunker import TextChunker

LOGGER = logging.getLogger(__name__)

_CRED_RE = re.compile(r"(https?://)([^@/]+@)", re.IGNORECASE)


def _sanitise_url(url: str) -> str:
    """Remove embedded credentials from a URL for safe logging / error messages."""
    return _CRED_RE.sub(r"\1***@", url)


def _strip_credentials(url: str) -> str:
    return _CRED_RE.sub(r"\1", url)


def git_source_id(owner: str, repo: str) -> str:
    return f"github:{owner}/{repo}"


class GitLoader(SourceLoader):
    """Clone / update repositories under *repos_path* and discover their files.

    Args:
        repos_path: Directory holding one clone per ``<owner>-<repo>``.
        chunker: Chunker shared by every file of the pass.
        remote_base: Host prefix; the remote is ``<remote_base>/<owner>/<repo>.git``.
        timeout: Seconds allowed for each git command.
        exclude: Extra glob patterns matched against file and directory names.
    """

    def __init__(
        self,
        repos_path: Path,
        chunker: TextChunker,
        *,
        remote_base: str = "https://github.com",
        timeout: float = 300.0,
        exclude: list[str] | None = None,
    ) -> None:
        super().__init__(chunker, exclude=exclude)
        validate_remote_base(remote_base)
        self.repos_path = Path(repos_path)
        self.remote_base = remote_base.rstrip("/")
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def local_path(self, owner: str, repo: str) -> Path:
        return self.repos_path / f"{owner}-{repo}"

    def remote_url(self, owner: str, repo: str) -> str:
        if self.remote_base.startswith("git@"):
            return f"{self.remote_base}:{owner}/{repo}.git"
        return f"{self.remote_base}/{owner}/{repo}.git"

    def sync_local(self, owner: str, repo: str, branch: str) -> Path:
        """Clone or fetch + hard-reset the clone for *owner*/*repo* at *branch*.

        Raises:
            RemoteUnavailable: clone or fetch failed or timed out.
            RepositoryCorrupt: the clone directory exists but cannot be reset.
        """
        repo_dir = self.local_path(owner, repo)
        url = self.remote_url(owner, repo)

        if repo_dir.exists():
            if not (repo_dir / ".git").exists():
                raise RepositoryCorrupt(
                    f"{repo_dir} exists but is not a git repository; delete it to re-clone"
                )
            LOGGER.info("Updating existing repository: %s", _sanitise_url(url))
            origin = self._origin_url(repo_dir)
            self._git(
                ["fetch", self._inject_token(origin), branch],
                cwd=repo_dir,
                error=RemoteUnavailable,
                what=f"git fetch failed for {_sanitise_url(url)}",
            )
            self._git(
                ["reset", "--hard", "FETCH_HEAD"],
                cwd=repo_dir,
                error=RepositoryCorrupt,
                what=f"git reset failed in {repo_dir}",
            )
            LOGGER.info("Repository updated: %s", repo_dir)
        else:
            LOGGER.info("Cloning repository: %s", _sanitise_url(url))
            self.repos_path.mkdir(parents=True, exist_ok=True)
            self._git(
                ["clone", "--branch", branch, "--single-branch", "--", self._inject_token(url), str(repo_dir)],
                cwd=self.repos_path,
                error=RemoteUnavailable,
                what=f"git clone failed for {_sanitise_url(url)}",
            )
            # clone records the URL it was given; keep the token out of .git/config
            self._git(
                ["remote", "set-url", "origin", _strip_credentials(url)],
                cwd=repo_dir,
                error=RepositoryCorrupt,
                what=f"cannot set origin in {repo_dir}",
            )
            LOGGER.info("Repository cloned to: %s", repo_dir)

        return repo_dir

    def current_commit(self, repo_dir: Path) -> str:
        """Return the commit id of HEAD in *repo_dir*. Raises RepositoryCorrupt."""
        out = self._git(
            ["rev-parse", "HEAD"],
            cwd=Path(repo_dir),
            error=RepositoryCorrupt,
            what=f"cannot resolve HEAD in {repo_dir}",
        )
        return out.strip()

    def fingerprint(self, root: Path) -> str:
        return self.current_commit(root)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _origin_url(self, repo_dir: Path) -> str:
        """Return origin's URL without credentials, scrubbing any stored ones."""
        stored = self._git(
            ["remote", "get-url", "origin"],
            cwd=repo_dir,
            error=RepositoryCorrupt,
            what=f"no origin remote in {repo_dir}",
        ).strip()
        origin = _strip_credentials(stored)
        if origin != stored:
            self._git(
                ["remote", "set-url", "origin", origin],
                cwd=repo_dir,
                error=RepositoryCorrupt,
                what=f"cannot set origin in {repo_dir}",
            )
        return origin

    @staticmethod
    def _inject_token(url: str) -> str:
        """Inject GIT_TOKEN into an HTTPS/HTTP URL for private repo auth."""
        token = os.environ.get("GIT_TOKEN", "")
        if not token or not url.startswith(("https://", "http://")):
            return url
        parsed = urllib.parse.urlparse(url)
        return parsed._replace(netloc=f"{token}@{parsed.netloc}").geturl()

    def _git(
        self,
        args: list[str],
        *,
        cwd: Path,
        error: type[RemoteUnavailable] | type[RepositoryCorrupt],
        what: str,
    ) -> str:
        """Run git (shell=False) and return stdout; map failures to *error*."""
        env = dict(os.environ, GIT_TERMINAL_PROMPT="0")
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=cwd,
                shell=False,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=env,
            )
        except subprocess.TimeoutExpired:
            raise RemoteUnavailable(f"{what}: timed out after {self.timeout:g}s") from None
        except subprocess.CalledProcessError as exc:
            # Strip credentials from stderr before surfacing in error message.
            stderr_safe = _sanitise_url((exc.stderr or "").strip())
            raise error(f"{what}: {stderr_safe}") from None
        except OSError as exc:
            raise error(f"{what}: {exc}") from None
        return result.stdout
