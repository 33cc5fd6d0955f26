"""
Service wiring for the routers.

Services are cheap wrappers around the process-wide store, so each request
builds its own against whatever get_store() currently returns.
"""

from samta.features.admin.service import AdminService
from samta.features.conversations.service import ConversationService
from samta.features.entitlements.service import EntitlementService
from samta.features.interests.service import InterestService
from samta.features.store.memory import get_store
from samta.features.users.service import UserService


def get_user_service() -> UserService:
    return UserService(get_store())


def get_entitlement_service() -> EntitlementService:
    return EntitlementService(get_store())


def get_interest_service() -> InterestService:
    store = get_store()
    return InterestService(store, EntitlementService(store))


def get_conversation_service() -> ConversationService:
    store = get_store()
    return ConversationService(store, EntitlementService(store))


def get_admin_service() -> AdminService:
    store = get_store()
    return AdminService(store, EntitlementService(store))
