import re
import subprocess

from .models import FileEntry

MAX_FILE_BYTES = 500 * 1024  # 500 KB
SKIP_DIRS = {".git", "node_modules", "__pycache__", ".venv", "dist", "build"}

_REMOTE_RE = re.compile(r"[:/]([^/:]+)/([^/]+?)(?:\.git)?/?$")


def repo_id_from_remote(url: str) -> str:
    """`owner/repo` from an https or ssh remote URL."""
    match = _REMOTE_RE.search(url.strip())
    if not match:
        raise ValueError(f"Cannot derive owner/repo from remote '{url}'")
    return f"{match.group(1)}/{match.group(2)}"


def get_remote_url(git_dir: str) -> str:
    result = subprocess.run(
        ["git", "--git-dir", git_dir, "remote", "get-url", "origin"],
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        raise RuntimeError(f"Failed to get git remote: {result.stderr.strip()}")
    return result.stdout.strip()


def _git(git_dir: str, *args: str, stdin: bytes | None = None) -> bytes:
    result = subprocess.run(
        ["git", "--git-dir", git_dir, *args],
        input=stdin,
        capture_output=True,
    )
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        raise RuntimeError(f"git {args[0]} failed: {stderr}")
    return result.stdout


def _indexable(path: str, size: int) -> bool:
    if size > MAX_FILE_BYTES:
        return False
    return not any(p.startswith(".") or p in SKIP_DIRS for p in path.split("/"))


def tree_blobs(git_dir: str, sha: str) -> list[tuple[str, str]]:
    """(path, object id) of every indexable blob at the commit.

    `-z` keeps paths unquoted, so names with spaces or non-ASCII bytes survive.
    """
    blobs = []
    for record in _git(git_dir, "ls-tree", "-r", "-l", "-z", sha).split(b"\0"):
        meta, _, raw_path = record.partition(b"\t")
        fields = meta.split()
        # <mode> <type> <object> <size>; submodules have no blob and no size
        if len(fields) != 4 or fields[1] != b"blob" or not fields[3].isdigit():
            continue
        path = raw_path.decode("utf-8", errors="replace")
        if _indexable(path, int(fields[3])):
            blobs.append((path, fields[2].decode("ascii")))
    return blobs


def list_files(git_dir: str, sha: str) -> list[str]:
    return [path for path, _ in tree_blobs(git_dir, sha)]


def read_blobs(git_dir: str, object_ids: list[str]) -> dict[str, bytes]:
    """Contents of many blobs through a single `git cat-file --batch` process."""
    if not object_ids:
        return {}
    out = _git(git_dir, "cat-file", "--batch", stdin="\n".join(object_ids).encode("ascii") + b"\n")

    contents: dict[str, bytes] = {}
    pos = 0
    while pos < len(out):
        header_end = out.index(b"\n", pos)
        header = out[pos:header_end].split()
        pos = header_end + 1
        # "<object> missing" has no body
        if len(header) != 3:
            continue
        size = int(header[2])
        contents[header[0].decode("ascii")] = out[pos:pos + size]
        pos += size + 1
    return contents


def load_files(git_dir: str, sha: str = "HEAD") -> list[FileEntry]:
    """FileEntry for every indexable UTF-8 file at the commit; binary blobs are skipped."""
    blobs = tree_blobs(git_dir, sha)
    contents = read_blobs(git_dir, list(dict.fromkeys(oid for _, oid in blobs)))

    entries = []
    for path, oid in blobs:
        raw = contents.get(oid)
        if raw is None:
            continue
        try:
            text = raw.decode("utf-8", errors="strict")
        except UnicodeDecodeError:
            continue
        entries.append(FileEntry(path=path, content=text))
    return entries
