"""User-defined folders for organizing the chat list."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from parley_stage.schemas.folder import Folder
from parley_stage.services.errors import ForbiddenError, NotFoundError
from parley_stage.services.ids import next_message_id
from parley_stage.store import KeyValueStore

logger = logging.getLogger(__name__)


def folder_key(folder_id: str) -> str:
    return f"folder:{folder_id}"


def folder_chats_key(folder_id: str) -> str:
    return f"folder:{folder_id}:chats"


def user_folders_key(username: str) -> str:
    return f"user:{username}:folders"


class FolderIndex:
    """Mapping of chats to folders owned by a single user.

    Membership is stored as plain sets, so a chat could sit in several
    folders; `move_chat` keeps it in at most one folder per user.
    """

    def __init__(
        self,
        store: KeyValueStore,
        id_factory: Callable[[], tuple[str, int]] = next_message_id,
    ) -> None:
        self.store = store
        self._id_factory = id_factory

    async def get(self, folder_id: str) -> Folder | None:
        raw = await self.store.get(folder_key(folder_id))
        if raw is None:
            return None
        return Folder.model_validate_json(raw)

    async def _owned(self, username: str, folder_id: str) -> Folder | None:
        folder = await self.get(folder_id)
        if folder is None or folder.username != username:
            return None
        return folder

    async def require_owned(self, username: str, folder_id: str) -> Folder:
        """Return the folder if `username` owns it.

        Raises:
            NotFoundError: If the folder does not exist.
            ForbiddenError: If another user owns it.
        """
        folder = await self.get(folder_id)
        if folder is None:
            raise NotFoundError("Folder not found")
        if folder.username != username:
            raise ForbiddenError("Folder belongs to another user")
        return folder

    async def create(self, username: str, name: str) -> Folder:
        """Create a folder owned by `username`."""
        # Suffix is time-ordered; ids sort in creation order.
        suffix, created_at = self._id_factory()
        folder = Folder(
            id=f"{username}:{suffix}",
            name=name,
            username=username,
            created_at=created_at,
        )
        await self.store.set(folder_key(folder.id), folder.model_dump_json())
        await self.store.sadd(user_folders_key(username), folder.id)
        logger.info("Folder %s created for %s", folder.id, username)
        return folder

    async def delete(self, username: str, folder_id: str) -> bool:
        """Delete a folder. Returns False if it is missing or owned by someone else."""
        if await self._owned(username, folder_id) is None:
            return False
        await self.store.delete(folder_key(folder_id))
        await self.store.delete(folder_chats_key(folder_id))
        await self.store.srem(user_folders_key(username), folder_id)
        return True

    async def assign(self, username: str, folder_id: str, chat_id: str) -> bool:
        """Add a chat to a folder. Returns False unless `username` owns the folder."""
        if await self._owned(username, folder_id) is None:
            return False
        await self.store.sadd(folder_chats_key(folder_id), chat_id)
        return True

    async def unassign(self, folder_id: str, chat_id: str) -> None:
        """Remove a chat from a folder; a no-op if it is not there."""
        await self.store.srem(folder_chats_key(folder_id), chat_id)

    async def list_for_user(self, username: str) -> list[Folder]:
        """Return the user's folders, oldest first."""
        folder_ids = await self.store.smembers(user_folders_key(username))
        folders = await asyncio.gather(*(self.get(folder_id) for folder_id in folder_ids))
        return sorted(
            (folder for folder in folders if folder is not None),
            key=lambda folder: (folder.created_at, folder.id),
        )

    async def list_chats_in(self, folder_id: str) -> list[str]:
        """Return the chat ids assigned to a folder."""
        return sorted(await self.store.smembers(folder_chats_key(folder_id)))

    async def get_chat_folder(self, username: str, chat_id: str) -> str | None:
        """Return the id of the user's folder holding `chat_id`, if any."""
        for folder_id in sorted(await self.store.smembers(user_folders_key(username))):
            if chat_id in await self.store.smembers(folder_chats_key(folder_id)):
                return folder_id
        return None

    async def move_chat(self, username: str, folder_id: str, chat_id: str) -> bool:
        """Place a chat in `folder_id`, removing it from any other folder of the user."""
        if await self._owned(username, folder_id) is None:
            return False
        folder_ids = await self.store.smembers(user_folders_key(username))
        for other_id in folder_ids - {folder_id}:
            await self.unassign(other_id, chat_id)
        return await self.assign(username, folder_id, chat_id)
