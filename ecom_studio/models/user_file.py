"""User file model - a generated or uploaded asset."""

from dataclasses import dataclass


@dataclass
class UserFile:
    """A row of user_files, shown in the asset galleries."""

    id: str
    file_path: str
    file_type: str  # "image" | "video"
    folder: str     # "uploads" | "image-assets" | "video-assets"
    file_name: str = ""
    is_favorite: bool = False
    is_viewed: bool = False
    created_at: str | None = None
    file_size: int = 0

    @property
    def basename(self) -> str:
        return self.file_path.rsplit("/", 1)[-1]

    @staticmethod
    def from_row(row: dict) -> "UserFile":
        file_path = row.get("file_path") or ""
        return UserFile(
            id=str(row.get("id")),
            file_path=file_path,
            file_type=row.get("file_type") or "",
            folder=row.get("folder") or "",
            file_name=row.get("file_name") or file_path.rsplit("/", 1)[-1],
            is_favorite=bool(row.get("is_favorite") or False),
            is_viewed=bool(row.get("is_viewed") or False),
            created_at=row.get("created_at"),
            file_size=int(row.get("file_size") or 0),
        )
