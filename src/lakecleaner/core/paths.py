"""Remote path construction for source and output files."""

from __future__ import annotations

OUTPUT_PREFIX = "file_"
OUTPUT_SUFFIX = ".parquet"


def object_uri(repo: str, path: str, branch: str | None = None, scheme: str = "s3") -> str:
    """Build the URI of an object in a repository.

    ``branch`` is inserted between the repository and the object path when
    given. An empty ``scheme`` yields a plain ``/``-joined path.

    Examples:
        >>> object_uri("r", "a.parquet")
        's3://r/a.parquet'
        >>> object_uri("r", "a.parquet", branch="main")
        's3://r/main/a.parquet'
        >>> object_uri("/tmp/r", "a.parquet", branch="main", scheme="")
        '/tmp/r/main/a.parquet'
    """
    parts = [repo.rstrip("/")]
    if branch:
        parts.append(branch.strip("/"))
    parts.append(path.lstrip("/"))
    joined = "/".join(parts)
    if not scheme:
        return joined
    return f"{scheme}://{joined}"


def output_name(progress: int) -> str:
    """Output file name for a batch flushed at the given progress."""
    return f"{OUTPUT_PREFIX}{progress}{OUTPUT_SUFFIX}"


def output_uri(progress: int, repo: str, to_branch: str | None = None, scheme: str = "s3") -> str:
    """Export target for a batch.

    Without ``to_branch`` the bare file name is returned and DuckDB resolves it
    relative to its working directory; with it, the file is written onto that
    branch of the repository.
    """
    name = output_name(progress)
    if not to_branch:
        return name
    return object_uri(repo, name, branch=to_branch, scheme=scheme)
