"""git CLI adapter for the VersionControl port.

Remote atomicity is git's: ``git push`` of a tag that already exists on the
remote with another target is rejected, and that rejection is surfaced as
TagConflictError. Every other remote failure is a PublishError. Nothing is
retried.
"""

from __future__ import annotations

from pathlib import Path
import subprocess

from releasekeeper.domain.errors import InvalidPromotionRequestError, PublishError, TagConflictError, ToolFailureError
from releasekeeper.domain.models import Tag, same_commit

_NO_TAG_MARKERS = ("no tag exactly matches", "no names found", "cannot describe", "no tags can describe")
_PUSH_CONFLICT_MARKERS = ("already exists", "[rejected]", "would clobber existing tag")


class GitVersionControl:
    def __init__(
        self,
        repo_root: Path,
        *,
        remote: str = "origin",
        annotated: bool = True,
        message_template: str = "{channel} release {name}",
        base_tag_match: str = "v[0-9]*",
        base_tag_exclude: str = "*-*",
        git: str = "git",
    ) -> None:
        self.repo_root = repo_root
        self.remote = remote
        self._annotated = annotated
        self._message_template = message_template
        self._base_tag_match = base_tag_match
        self._base_tag_exclude = base_tag_exclude
        self._git_bin = git

    def _git(self, *args: str) -> subprocess.CompletedProcess[str]:
        argv = [self._git_bin, *args]
        try:
            return subprocess.run(
                argv,
                cwd=str(self.repo_root),
                text=True,
                capture_output=True,
                check=False,
            )
        except FileNotFoundError:
            raise ToolFailureError(argv, 127, "git executable not found") from None

    def _git_checked(self, *args: str) -> str:
        r = self._git(*args)
        if r.returncode != 0:
            raise ToolFailureError([self._git_bin, *args], r.returncode, r.stderr.strip())
        return r.stdout.strip()

    def current_commit(self) -> str:
        return self._git_checked("rev-parse", "HEAD")

    def resolve_commit(self, ref: str) -> str:
        r = self._git("rev-parse", "-q", "--verify", f"{ref}^{{commit}}")
        sha = r.stdout.strip()
        if r.returncode != 0 or not sha:
            raise InvalidPromotionRequestError(f"not a commit in this repository: {ref!r}")
        return sha

    def _describe_optional(self, *args: str) -> str | None:
        r = self._git("describe", *args)
        if r.returncode == 0:
            return r.stdout.strip() or None
        if any(marker in r.stderr.lower() for marker in _NO_TAG_MARKERS):
            return None
        raise ToolFailureError([self._git_bin, "describe", *args], r.returncode, r.stderr.strip())

    def exact_tag(self, commit: str) -> str | None:
        return self._describe_optional("--tags", "--exact-match", commit)

    def latest_tag(self) -> str | None:
        """Nearest release tag; snapshot and nightly tags never serve as a base."""

        args = ["--tags", "--abbrev=0"]
        if self._base_tag_match:
            args.append(f"--match={self._base_tag_match}")
        if self._base_tag_exclude:
            args.append(f"--exclude={self._base_tag_exclude}")
        return self._describe_optional(*args)

    def describe(self) -> str:
        return self._git_checked("describe", "--tags", "--always")

    def local_tag_commit(self, name: str) -> str | None:
        r = self._git("rev-parse", "-q", "--verify", f"refs/tags/{name}^{{commit}}")
        if r.returncode != 0:
            return None
        return r.stdout.strip() or None

    def remote_tag_commit(self, name: str) -> str | None:
        ref = f"refs/tags/{name}"
        r = self._git("ls-remote", "--tags", self.remote, ref, f"{ref}^{{}}")
        if r.returncode != 0:
            raise PublishError(f"cannot query tags on remote {self.remote}: {r.stderr.strip()}")
        direct: str | None = None
        peeled: str | None = None
        for line in r.stdout.splitlines():
            parts = line.split()
            if len(parts) != 2:
                continue
            sha, refname = parts
            if refname == f"{ref}^{{}}":
                peeled = sha
            elif refname == ref:
                direct = sha
        return peeled or direct

    def _tag_message(self, tag: Tag) -> str:
        return self._message_template.format(channel=tag.channel, name=tag.name, commit=tag.commit)

    def publish_tag(self, tag: Tag) -> None:
        local = self.local_tag_commit(tag.name)
        if local is not None and not same_commit(local, tag.commit):
            raise TagConflictError(tag.name, requested_commit=tag.commit, bound_commit=local)
        if local is None:
            if self._annotated:
                args = ["tag", "-a", tag.name, tag.commit, "-m", self._tag_message(tag)]
            else:
                args = ["tag", tag.name, tag.commit]
            r = self._git(*args)
            if r.returncode != 0:
                raise PublishError(f"cannot create tag {tag.name}: {r.stderr.strip()}")

        r = self._git("push", self.remote, f"refs/tags/{tag.name}")
        if r.returncode == 0:
            return
        detail = r.stderr.strip()
        if any(marker in detail.lower() for marker in _PUSH_CONFLICT_MARKERS):
            raise TagConflictError(tag.name, requested_commit=tag.commit, bound_commit=None)
        raise PublishError(f"cannot push tag {tag.name} to {self.remote}: {detail}")

    def changed_paths(self) -> list[str]:
        """Tracked files modified in the worktree or the index; untracked files do not count."""

        paths: list[str] = []
        for extra in ((), ("--cached",)):
            args = ("diff", "--name-only", *extra)
            r = self._git(*args)
            if r.returncode != 0:
                raise ToolFailureError([self._git_bin, *args], r.returncode, r.stderr.strip())
            for line in r.stdout.splitlines():
                if line.strip() and line not in paths:
                    paths.append(line)
        return paths
