# backend/axioscan/storage/records.py
import time
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import InvalidArgument, NotFoundError, RemoteIOError
from ..models import Document, Folder, Page, Tag
from ..utils.logging import storage_logger
from .base import DocumentDraft, PageDraft, PageLocatorUpdate, RecordStore, utcnow

DOCUMENT_FIELDS = {"name", "folder_id", "is_favorite", "page_count", "file_size", "updated_at"}
FOLDER_FIELDS = {"name", "parent_id"}
TAG_FIELDS = {"name", "color"}


class SqlRecordStore(RecordStore):
    """Record store over a SQLAlchemy session; one transaction per call"""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _transaction(self, operation: str, **context):
        start_time = time.time()
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            storage_logger.error(f"Record store {operation} failed", extra={
                **context,
                "error": str(e)
            })
            raise RemoteIOError(f"Record store {operation} failed: {e}") from e
        except BaseException:
            self.db.rollback()
            raise

        storage_logger.debug(f"Record store {operation} committed", extra={
            **context,
            "execution_time_ms": round((time.time() - start_time) * 1000, 2)
        })

    @contextmanager
    def _reading(self, operation: str):
        try:
            yield
        except SQLAlchemyError as e:
            storage_logger.error(f"Record store {operation} failed", extra={"error": str(e)})
            raise RemoteIOError(f"Record store {operation} failed: {e}") from e

    @staticmethod
    def _apply(instance, fields: Dict[str, Any], allowed: set) -> None:
        unknown = set(fields) - allowed
        if unknown:
            raise InvalidArgument(f"Fields cannot be updated: {sorted(unknown)}")
        for field, value in fields.items():
            setattr(instance, field, value)

    def _document(self, owner_id: str, document_id: int) -> Optional[Document]:
        return self.db.query(Document) \
            .filter(Document.id == document_id, Document.owner_id == owner_id) \
            .first()

    def _require_document(self, owner_id: str, document_id: int) -> Document:
        document = self._document(owner_id, document_id)
        if not document:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    # Documents

    async def list_documents(
            self,
            owner_id: str,
            folder_id: Optional[int] = None,
            favorites_only: bool = False
    ) -> List[Document]:
        with self._reading("list_documents"):
            query = self.db.query(Document).filter(Document.owner_id == owner_id)
            if folder_id is not None:
                query = query.filter(Document.folder_id == folder_id)
            if favorites_only:
                query = query.filter(Document.is_favorite.is_(True))
            return query.order_by(Document.created_at.desc(), Document.id.desc()).all()

    async def get_document(self, owner_id: str, document_id: int) -> Optional[Document]:
        with self._reading("get_document"):
            return self._document(owner_id, document_id)

    @staticmethod
    def _new_document(owner_id: str, draft: DocumentDraft, pages: List[PageDraft], now) -> Document:
        document = Document(
            owner_id=owner_id,
            name=draft.name,
            folder_id=draft.folder_id,
            is_favorite=False,
            page_count=draft.page_count,
            file_size=draft.file_size,
            created_at=now,
            updated_at=now,
        )
        for page in pages:
            document.pages.append(Page(
                owner_id=owner_id,
                page_number=page.page_number,
                image_locator=page.image_locator,
                thumbnail_locator=page.thumbnail_locator,
                created_at=now,
            ))
        return document

    async def create_document(self, owner_id: str, draft: DocumentDraft, pages: List[PageDraft]) -> Document:
        documents = await self.create_documents(owner_id, [(draft, pages)])
        return documents[0]

    async def create_documents(
            self,
            owner_id: str,
            documents: List[Tuple[DocumentDraft, List[PageDraft]]]
    ) -> List[Document]:
        now = utcnow()
        created = [self._new_document(owner_id, draft, pages, now) for draft, pages in documents]

        with self._transaction(
                "create_documents",
                owner_id=owner_id,
                document_count=len(created),
                page_count=sum(len(pages) for _, pages in documents)
        ):
            self.db.add_all(created)

        for document in created:
            self.db.refresh(document)
        return created

    async def update_document(self, owner_id: str, document_id: int, fields: Dict[str, Any]) -> Document:
        with self._transaction("update_document", document_id=document_id):
            document = self._require_document(owner_id, document_id)
            self._apply(document, fields, DOCUMENT_FIELDS)

        self.db.refresh(document)
        return document

    async def delete_document(self, owner_id: str, document_id: int) -> List[str]:
        with self._transaction("delete_document", document_id=document_id):
            document = self._require_document(owner_id, document_id)
            locators = []
            for page in document.pages:
                locators.append(page.image_locator)
                if page.thumbnail_locator:
                    locators.append(page.thumbnail_locator)
            self.db.delete(document)
        return locators

    # Pages

    async def list_pages(self, owner_id: str, document_id: int) -> List[Page]:
        with self._reading("list_pages"):
            return self.db.query(Page) \
                .filter(Page.document_id == document_id, Page.owner_id == owner_id) \
                .order_by(Page.page_number) \
                .all()

    async def get_page(self, owner_id: str, page_id: int) -> Optional[Page]:
        with self._reading("get_page"):
            return self.db.query(Page) \
                .filter(Page.id == page_id, Page.owner_id == owner_id) \
                .first()

    async def update_pages(
            self,
            owner_id: str,
            document_id: int,
            updates: List[PageLocatorUpdate]
    ) -> List[Page]:
        updated = []
        with self._transaction("update_pages", document_id=document_id, page_count=len(updates)):
            by_id = {
                page.id: page
                for page in self.db.query(Page).filter(
                    Page.document_id == document_id,
                    Page.owner_id == owner_id,
                    Page.id.in_([u.page_id for u in updates])
                )
            }
            for update in updates:
                page = by_id.get(update.page_id)
                if page is None:
                    raise NotFoundError(f"Page {update.page_id} not found in document {document_id}")
                page.image_locator = update.image_locator
                page.thumbnail_locator = update.thumbnail_locator
                updated.append(page)
        return updated

    # Folders

    async def list_folders(self, owner_id: str) -> List[Folder]:
        with self._reading("list_folders"):
            return self.db.query(Folder).filter(Folder.owner_id == owner_id).order_by(Folder.name).all()

    async def get_folder(self, owner_id: str, folder_id: int) -> Optional[Folder]:
        with self._reading("get_folder"):
            return self.db.query(Folder) \
                .filter(Folder.id == folder_id, Folder.owner_id == owner_id) \
                .first()

    async def create_folder(self, owner_id: str, name: str, parent_id: Optional[int] = None) -> Folder:
        folder = Folder(owner_id=owner_id, name=name, parent_id=parent_id)
        with self._transaction("create_folder", owner_id=owner_id):
            self.db.add(folder)
        self.db.refresh(folder)
        return folder

    async def update_folder(self, owner_id: str, folder_id: int, fields: Dict[str, Any]) -> Folder:
        with self._transaction("update_folder", folder_id=folder_id):
            folder = await self.get_folder(owner_id, folder_id)
            if not folder:
                raise NotFoundError(f"Folder {folder_id} not found")
            self._apply(folder, fields, FOLDER_FIELDS)
        self.db.refresh(folder)
        return folder

    async def delete_folder(self, owner_id: str, folder_id: int) -> None:
        with self._transaction("delete_folder", folder_id=folder_id):
            folder = await self.get_folder(owner_id, folder_id)
            if not folder:
                raise NotFoundError(f"Folder {folder_id} not found")

            # Children move up a level; documents become unfiled
            self.db.query(Folder) \
                .filter(Folder.parent_id == folder.id, Folder.owner_id == owner_id) \
                .update({Folder.parent_id: folder.parent_id}, synchronize_session=False)
            self.db.query(Document) \
                .filter(Document.folder_id == folder.id, Document.owner_id == owner_id) \
                .update({Document.folder_id: None}, synchronize_session=False)
            self.db.delete(folder)
        self.db.expire_all()

    # Tags

    async def list_tags(self, owner_id: str) -> List[Tag]:
        with self._reading("list_tags"):
            return self.db.query(Tag).filter(Tag.owner_id == owner_id).order_by(Tag.name).all()

    async def get_tag(self, owner_id: str, tag_id: int) -> Optional[Tag]:
        with self._reading("get_tag"):
            return self.db.query(Tag).filter(Tag.id == tag_id, Tag.owner_id == owner_id).first()

    async def create_tag(self, owner_id: str, name: str, color: Optional[str] = None) -> Tag:
        tag = Tag(owner_id=owner_id, name=name, color=color)
        with self._transaction("create_tag", owner_id=owner_id):
            self.db.add(tag)
        self.db.refresh(tag)
        return tag

    async def update_tag(self, owner_id: str, tag_id: int, fields: Dict[str, Any]) -> Tag:
        with self._transaction("update_tag", tag_id=tag_id):
            tag = await self.get_tag(owner_id, tag_id)
            if not tag:
                raise NotFoundError(f"Tag {tag_id} not found")
            self._apply(tag, fields, TAG_FIELDS)
        self.db.refresh(tag)
        return tag

    async def delete_tag(self, owner_id: str, tag_id: int) -> None:
        with self._transaction("delete_tag", tag_id=tag_id):
            tag = await self.get_tag(owner_id, tag_id)
            if not tag:
                raise NotFoundError(f"Tag {tag_id} not found")
            self.db.delete(tag)

    async def add_tag_to_document(self, owner_id: str, document_id: int, tag_id: int) -> None:
        with self._transaction("add_tag_to_document", document_id=document_id, tag_id=tag_id):
            document = self._require_document(owner_id, document_id)
            tag = await self.get_tag(owner_id, tag_id)
            if not tag:
                raise NotFoundError(f"Tag {tag_id} not found")
            if tag not in document.tags:
                document.tags.append(tag)

    async def remove_tag_from_document(self, owner_id: str, document_id: int, tag_id: int) -> None:
        with self._transaction("remove_tag_from_document", document_id=document_id, tag_id=tag_id):
            document = self._require_document(owner_id, document_id)
            tag = await self.get_tag(owner_id, tag_id)
            if not tag:
                raise NotFoundError(f"Tag {tag_id} not found")
            if tag in document.tags:
                document.tags.remove(tag)
