#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from cartsync.data.models.storage_entry import StorageEntryModel

__all__ = ["StorageEntryModel"]
