"""Staged path references of the form "/<dir>/<name>?v=<version>&where=<area>"."""
from dataclasses import dataclass
from urllib.parse import parse_qs, urlencode, urlsplit

WHERE_UPLOAD = "upload"
WHERE_MULTI_UPLOAD = "multi_upload"


@dataclass(frozen=True)
class UploadPathInfo:
    """Result of parsing a path reference."""
    path: str
    version: str = ""
    where: str = ""

    @property
    def is_staged(self) -> bool:
        """References without a 'where' point at already published files."""
        return bool(self.where)


def parse_upload_path(reference: str) -> UploadPathInfo:
    """Split a reference into its path, version and where parts."""
    parts = urlsplit(reference or "")
    query = parse_qs(parts.query)
    return UploadPathInfo(
        path=parts.path,
        version=query.get("v", [""])[0],
        where=query.get("where", [""])[0],
    )


def build_upload_path(path: str, version: str, where: str = "") -> str:
    params = {"v": version}
    if where:
        params["where"] = where
    return f"{path}?{urlencode(params)}"
