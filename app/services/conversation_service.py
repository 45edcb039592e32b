# app/services/conversation_service.py

import logging
from datetime import datetime, UTC
from typing import List, Optional

from sqlalchemy import or_

from infrastructure.relationship_store import RelationshipStore
from models.conversation import Conversation
from services.pair_key import canonical_pair

logger = logging.getLogger(__name__)


class ConversationService:
    """Opens the conversation that comes with a new match or friendship"""

    @staticmethod
    async def fetch_or_create(
        store: RelationshipStore,
        kind: str,
        user_id_1: str,
        user_id_2: str
    ) -> Conversation:
        """
        Get the conversation of this kind between two users, creating it once

        Args:
            store: Relationship store, normally inside the caller's transaction
            kind: 'dating' or 'friends'
            user_id_1: One participant
            user_id_2: The other participant

        Returns:
            The single conversation for the pair and kind
        """
        user_a, user_b = canonical_pair(user_id_1, user_id_2)
        conversation, created = await store.upsert_if_absent(
            Conversation,
            {"kind": kind, "user_a_id": user_a, "user_b_id": user_b},
            {"created_at": datetime.now(UTC)}
        )
        if created:
            logger.info(f"Opened {kind} conversation between {user_a} and {user_b}")
        return conversation

    @staticmethod
    async def list_for_user(
        store: RelationshipStore,
        user_id: str,
        kind: Optional[str] = None
    ) -> List[Conversation]:
        criteria = [or_(Conversation.user_a_id == user_id, Conversation.user_b_id == user_id)]
        if kind is not None:
            criteria.append(Conversation.kind == kind)
        return await store.select(Conversation, *criteria, order_by=Conversation.created_at.desc())
