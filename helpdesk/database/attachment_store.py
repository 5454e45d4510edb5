"""
Attachment Store - uploads ticket attachments to Supabase Storage and hands
back public URLs.

Size limits are the caller's job; see helpdesk.tickets.submission.
"""

import asyncio
import logging
import time
import uuid
from typing import List, Optional

from helpdesk.database.supabase_client import SupabaseClientSingleton
from helpdesk.models.ticket import Attachment
from helpdesk.utils.constants import settings

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.gif', '.webp', '.svg')


class AttachmentStore:
    def __init__(self, supabase_client=None, bucket_name: Optional[str] = None):
        self.supabase = supabase_client or SupabaseClientSingleton.get_instance()
        self.bucket_name = bucket_name or settings.ATTACHMENT_BUCKET

    def _bucket(self):
        return self.supabase.storage.from_(self.bucket_name)

    @staticmethod
    def object_path(attachment: Attachment, owner_id: str) -> str:
        """<owner>/<millis>-<random>.<ext>, unique per upload."""
        millis = int(time.time() * 1000)
        return f"{owner_id}/{millis}-{uuid.uuid4().hex[:11]}.{attachment.extension}"

    async def upload(self, attachment: Attachment, owner_id: str) -> Optional[str]:
        """
        Upload one file and return its public URL.

        Returns None on failure; the failure is logged here.
        """
        path = self.object_path(attachment, owner_id)
        file_options = {"cache-control": "3600", "upsert": "false"}
        if attachment.content_type:
            file_options["content-type"] = attachment.content_type

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None, self._bucket().upload, path, attachment.content, file_options
            )
            url = self._bucket().get_public_url(path)
        except Exception as e:
            logger.error(f"Failed to upload file {attachment.filename}: {e}")
            return None

        logger.info(f"Uploaded {attachment.filename} ({attachment.size} bytes) to {path}")
        return url

    async def upload_many(self, attachments: List[Attachment], owner_id: str) -> List[str]:
        """Upload concurrently; failed uploads are dropped from the result."""
        results = await asyncio.gather(*(self.upload(a, owner_id) for a in attachments))
        return [url for url in results if url]

    async def delete(self, url: str) -> bool:
        path = "/".join(url.rstrip("/").split("/")[-2:])

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._bucket().remove, [path])
        except Exception as e:
            logger.error(f"Failed to delete file {path}: {e}")
            return False
        return True

    @staticmethod
    def file_name_from_url(url: str) -> str:
        return url.split("/")[-1]

    @staticmethod
    def is_image(url: str) -> bool:
        path = url.split("?", 1)[0].split("#", 1)[0]
        return AttachmentStore.file_name_from_url(path).lower().endswith(IMAGE_EXTENSIONS)
