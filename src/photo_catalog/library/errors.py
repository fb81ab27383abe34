"""Exceptions raised by the photo catalog core."""


class PhotoCatalogError(Exception):
    """Base class for every error raised by photo_catalog."""


class NotFoundError(PhotoCatalogError):
    """A directory, file, photo or collection does not exist."""


class RootNotFoundError(NotFoundError):
    """The directory handed to the scanner does not exist."""


class NotADirectoryPathError(PhotoCatalogError):
    """The path handed to the scanner exists but is not a directory."""


class PhotoNotFoundError(NotFoundError):
    """No photo row has the requested id."""

    def __init__(self, photo_id: int):
        super().__init__(f"Photo not found: {photo_id}")
        self.photo_id = photo_id


class CollectionNotFoundError(NotFoundError):
    """No collection row has the requested id."""

    def __init__(self, collection_id: int):
        super().__init__(f"Collection not found: {collection_id}")
        self.collection_id = collection_id


class DuplicateError(PhotoCatalogError):
    """A uniqueness constraint of the catalog was violated."""


class DuplicatePathError(DuplicateError):
    """A photo with the same path is already catalogued."""

    def __init__(self, path: str):
        super().__init__(f"Photo already catalogued: {path}")
        self.path = path


class DuplicateNameError(DuplicateError):
    """A collection with the same name already exists."""

    def __init__(self, name: str):
        super().__init__(f"Collection already exists: {name}")
        self.name = name


class ImageReadError(PhotoCatalogError):
    """An image file could not be opened, read or written."""


class ImageDecodeError(PhotoCatalogError):
    """Image bytes could not be decoded."""


class UnsupportedFormatError(PhotoCatalogError):
    """The requested output extension is not a supported image format."""


class CatalogSchemaError(PhotoCatalogError):
    """The catalog database carries a schema marker this code cannot handle."""
