# File: smart_parking/infrastructure/repositories.py
"""
Repositories for the Smart Parking engine

Parking lots live in memory for the lifetime of the process:
1. Repository - Generic repository interface
2. InMemoryRepository - Dictionary-backed implementation keyed by entity id
3. InMemoryParkingLotRepository - Parking lot lookups by id and by name
"""

from abc import ABC, abstractmethod
from typing import Dict, Generic, List, Optional, TypeVar
import logging
import threading

from ..domain.aggregates import ParkingLot

T = TypeVar('T')  # Entity type
ID = TypeVar('ID')  # ID type


# ============================================================================
# REPOSITORY INTERFACES
# ============================================================================

class Repository(ABC, Generic[T, ID]):
    """Base repository interface"""

    @abstractmethod
    def add(self, entity: T) -> T:
        """Add an entity to the repository"""
        pass

    @abstractmethod
    def get(self, id: ID) -> Optional[T]:
        """Get an entity by ID"""
        pass

    @abstractmethod
    def get_all(self, skip: int = 0, limit: int = 100) -> List[T]:
        """Get all entities with pagination"""
        pass

    @abstractmethod
    def delete(self, id: ID) -> bool:
        """Delete an entity by ID"""
        pass

    @abstractmethod
    def exists(self, id: ID) -> bool:
        pass

    @abstractmethod
    def count(self) -> int:
        pass


# ============================================================================
# IN-MEMORY REPOSITORIES
# ============================================================================

class InMemoryRepository(Repository[T, str]):
    """Dictionary-backed repository"""

    def __init__(self):
        self._storage: Dict[str, T] = {}
        self._lock = threading.Lock()
        self._logger = logging.getLogger(self.__class__.__name__)

    def add(self, entity: T) -> T:
        entity_id = getattr(entity, 'id')
        with self._lock:
            if entity_id in self._storage:
                raise KeyError(f"Entity {entity_id} already exists")
            self._storage[entity_id] = entity
        self._logger.debug(f"Added entity {entity_id}")
        return entity

    def get(self, id: str) -> Optional[T]:
        with self._lock:
            return self._storage.get(id)

    def get_all(self, skip: int = 0, limit: int = 100) -> List[T]:
        with self._lock:
            items = list(self._storage.values())
        return items[skip:skip + limit]

    def delete(self, id: str) -> bool:
        with self._lock:
            if id not in self._storage:
                return False
            del self._storage[id]
        self._logger.debug(f"Deleted entity {id}")
        return True

    def exists(self, id: str) -> bool:
        with self._lock:
            return id in self._storage

    def count(self) -> int:
        with self._lock:
            return len(self._storage)

    def clear(self) -> None:
        """Clear all data (for testing)"""
        with self._lock:
            self._storage.clear()


class InMemoryParkingLotRepository(InMemoryRepository[ParkingLot]):
    """In-memory repository for parking lots"""

    def find_by_name(self, name: str) -> Optional[ParkingLot]:
        """Find the first lot with the given name"""
        for lot in self.get_all(limit=self.count()):
            if lot.name == name:
                return lot
        return None
