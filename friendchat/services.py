from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from . import config
from .bus import MessageBus
from .chats import ChatEngine
from .queries import QueryFacade
from .relationships import RelationshipEngine
from .store import EntityStore, connect


@dataclass
class Services:
    store: EntityStore
    bus: MessageBus
    relationships: RelationshipEngine
    chats: ChatEngine
    queries: QueryFacade

    @classmethod
    def build(cls, store: EntityStore, bus: Optional[MessageBus] = None) -> "Services":
        bus = bus or MessageBus()
        return cls(
            store=store,
            bus=bus,
            relationships=RelationshipEngine(store),
            chats=ChatEngine(store, bus),
            queries=QueryFacade(store),
        )

    @classmethod
    def from_config(cls) -> "Services":
        return cls.build(connect(config.MONGO_URI, config.MONGO_DB))

    async def start(self) -> None:
        await self.store.init_db()

    def close(self) -> None:
        self.bus.close()
        self.store.close()
