"""
External collaborator adapters.

Each adapter narrows its service's payloads into src.common.types models and
raises a CollaboratorError subclass on failure.
"""

from src.clients.notion_directory import NotionDirectory
from src.clients.qloo_client import EntityURN, InsightSignal, QlooClient
from src.clients.slack_transport import SlackTransport
from src.clients.state_store import InMemoryStateStore, RedisStateStore, create_state_store
from src.clients.text_generator import TextGenerator

__all__ = [
    "EntityURN",
    "InMemoryStateStore",
    "InsightSignal",
    "NotionDirectory",
    "QlooClient",
    "RedisStateStore",
    "SlackTransport",
    "TextGenerator",
    "create_state_store",
]
