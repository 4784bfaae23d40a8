# agencyos/core/repository.py

from abc import ABC
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Generic, List, NoReturn, Optional, Tuple, Type, TypeVar

from bson import ObjectId
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

ModelType = TypeVar("ModelType", bound=BaseModel)


def utcnow() -> datetime:
    """Naive UTC, matching what the driver returns for stored datetimes."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BaseRepository(ABC, Generic[ModelType]):
    """CRUD over one collection, returning validated pydantic models.

    Driver failures surface as ValueError (unique index violated) or
    RuntimeError (anything else) so services never see pymongo types.
    """

    model: Type[ModelType]
    collection_name: str

    def __init__(self, db: AsyncIOMotorDatabase):
        name = getattr(self, "collection_name", None)
        model = getattr(self, "model", None)
        if not name:
            raise AttributeError(f"{type(self).__name__} has no 'collection_name'")
        if not (isinstance(model, type) and issubclass(model, BaseModel)):
            raise AttributeError(f"{type(self).__name__}.model must be a pydantic model")
        if db is None:
            raise TypeError(f"{type(self).__name__} needs a database handle")
        self.db = db
        self.collection: AsyncIOMotorCollection = db[name]

    @staticmethod
    def _to_objectid(value: Any) -> Optional[ObjectId]:
        if isinstance(value, ObjectId):
            return value
        return ObjectId(value) if isinstance(value, str) and ObjectId.is_valid(value) else None

    def _handle_db_exception(self, e: Exception, operation: str, doc_id: Any = None, query: Optional[Dict] = None) -> NoReturn:
        log = logger.bind(collection=self.collection_name, operation=operation, doc_id=str(doc_id) if doc_id else None)
        if isinstance(e, DuplicateKeyError):
            fields = list(((e.details or {}).get("keyValue") or {}).keys())
            log.error(f"Unique index violated on {fields}")
            raise ValueError(f"Duplicate key error: Field(s) {fields} must be unique.") from e
        log.exception(f"{operation} failed on '{self.collection_name}' (query={str(query)[:100] if query else None}): {e}")
        raise RuntimeError(f"Database error during operation: {operation}") from e

    def _prepare_data_for_db(self, data: Dict) -> Dict:
        """BSON has no Decimal; amounts are stored as floats. Subclasses may extend."""
        return {key: float(value) if isinstance(value, Decimal) else value for key, value in data.items()}

    def _validate(self, document: Optional[Dict]) -> Optional[ModelType]:
        return self.model.model_validate(document) if document else None

    async def get_by_id(self, id: str | ObjectId) -> Optional[ModelType]:
        obj_id = self._to_objectid(id)
        if not obj_id:
            return None
        try:
            document = await self.collection.find_one({"_id": obj_id})
        except Exception as e:
            self._handle_db_exception(e, "get_by_id", obj_id)
        return self._validate(document)

    async def get_by(self, query: Dict[str, Any], sort: Optional[List[Tuple[str, int]]] = None) -> Optional[ModelType]:
        """Returns the FIRST document matching the query."""
        try:
            document = await self.collection.find_one(query, sort=sort)
        except Exception as e:
            self._handle_db_exception(e, "get_by", query=query)
        return self._validate(document)

    async def list_by(
        self,
        query: Optional[Dict[str, Any]] = None,
        skip: int = 0,
        limit: int = 100,
        sort: Optional[List[Tuple[str, int]]] = None,
    ) -> List[ModelType]:
        """Lists documents. `limit=0` returns everything."""
        query = query or {}
        try:
            cursor = self.collection.find(query)
            if sort:
                cursor = cursor.sort(sort)
            if skip > 0:
                cursor = cursor.skip(skip)
            if limit > 0:
                cursor = cursor.limit(limit)
            documents = await cursor.to_list(length=limit if limit > 0 else None)
        except Exception as e:
            self._handle_db_exception(e, "list_by", query=query)
        return [self.model.model_validate(doc) for doc in documents]

    async def create(self, data_in: BaseModel | Dict) -> ModelType:
        if isinstance(data_in, BaseModel):
            create_data = data_in.model_dump(by_alias=False)
        else:
            create_data = dict(data_in)

        create_data = self._prepare_data_for_db(create_data)
        now = utcnow()
        create_data.setdefault("created_at", now)
        create_data.setdefault("updated_at", now)
        create_data.pop("_id", None)
        create_data.pop("id", None)

        try:
            result = await self.collection.insert_one(create_data)
        except Exception as e:
            self._handle_db_exception(e, "create")

        created = await self.get_by_id(result.inserted_id)
        if created is None:
            logger.critical(f"CRITICAL: Failed to retrieve document after insertion! ID: {result.inserted_id}, Collection: {self.collection_name}")
            raise RuntimeError("Failed to retrieve document after creation.")
        return created

    async def update(self, id: str | ObjectId, data_in: BaseModel | Dict, extra_query: Optional[Dict[str, Any]] = None) -> Optional[ModelType]:
        """Applies `$set` with the given fields. Unset pydantic fields are skipped."""
        obj_id = self._to_objectid(id)
        if not obj_id:
            return None

        if isinstance(data_in, BaseModel):
            update_data = data_in.model_dump(exclude_unset=True, by_alias=False)
        else:
            update_data = dict(data_in)

        update_data = self._prepare_data_for_db(update_data)
        for field in ("_id", "id", "created_at", "organization_id"):
            update_data.pop(field, None)

        query = {"_id": obj_id, **(extra_query or {})}
        if not update_data:
            return self._validate(await self.collection.find_one(query))

        update_data["updated_at"] = utcnow()
        try:
            document = await self.collection.find_one_and_update(
                query,
                {"$set": update_data},
                return_document=ReturnDocument.AFTER,
            )
        except Exception as e:
            self._handle_db_exception(e, "update", obj_id)

        if document is None:
            logger.warning(f"Document not found for update: ID {id}, Collection: {self.collection_name}")
        return self._validate(document)

    async def increment(
        self,
        id: str | ObjectId,
        inc: Dict[str, int | float],
        set_fields: Optional[Dict[str, Any]] = None,
    ) -> Optional[ModelType]:
        """Atomic `$inc`, optionally combined with `$set`."""
        obj_id = self._to_objectid(id)
        if not obj_id:
            return None
        update: Dict[str, Any] = {"$inc": inc, "$set": {"updated_at": utcnow(), **(set_fields or {})}}
        try:
            document = await self.collection.find_one_and_update(
                {"_id": obj_id}, update, return_document=ReturnDocument.AFTER
            )
        except Exception as e:
            self._handle_db_exception(e, "increment", obj_id)
        return self._validate(document)

    async def delete(self, id: str | ObjectId, extra_query: Optional[Dict[str, Any]] = None) -> bool:
        obj_id = self._to_objectid(id)
        if not obj_id:
            return False
        try:
            result = await self.collection.delete_one({"_id": obj_id, **(extra_query or {})})
        except Exception as e:
            self._handle_db_exception(e, "delete", obj_id)
        deleted = result.deleted_count > 0
        if deleted:
            logger.info(f"Document deleted: ID {id}, Collection: {self.collection_name}")
        else:
            logger.warning(f"Document not found for deletion: ID {id}, Collection: {self.collection_name}")
        return deleted

    async def delete_many(self, query: Dict[str, Any]) -> int:
        try:
            result = await self.collection.delete_many(query)
        except Exception as e:
            self._handle_db_exception(e, "delete_many", query=query)
        return result.deleted_count

    async def count(self, query: Optional[Dict[str, Any]] = None) -> int:
        try:
            return await self.collection.count_documents(query or {})
        except Exception as e:
            self._handle_db_exception(e, "count", query=query)


class TenantRepository(BaseRepository[ModelType]):
    """Repository whose every read and write is scoped by `organization_id`.

    An id that belongs to another organization behaves exactly like a
    missing one, so services can map `None` straight to a 404.
    """

    async def get_for_org(self, organization_id: str, id: str | ObjectId) -> Optional[ModelType]:
        obj_id = self._to_objectid(id)
        if not obj_id:
            return None
        return await self.get_by({"_id": obj_id, "organization_id": organization_id})

    async def list_for_org(
        self,
        organization_id: str,
        query: Optional[Dict[str, Any]] = None,
        skip: int = 0,
        limit: int = 100,
        sort: Optional[List[Tuple[str, int]]] = None,
    ) -> List[ModelType]:
        scoped = {**(query or {}), "organization_id": organization_id}
        return await self.list_by(scoped, skip=skip, limit=limit, sort=sort or [("created_at", -1)])

    async def update_for_org(self, organization_id: str, id: str | ObjectId, data_in: BaseModel | Dict) -> Optional[ModelType]:
        return await self.update(id, data_in, extra_query={"organization_id": organization_id})

    async def delete_for_org(self, organization_id: str, id: str | ObjectId) -> bool:
        return await self.delete(id, extra_query={"organization_id": organization_id})

    async def count_for_org(self, organization_id: str, query: Optional[Dict[str, Any]] = None) -> int:
        return await self.count({**(query or {}), "organization_id": organization_id})
