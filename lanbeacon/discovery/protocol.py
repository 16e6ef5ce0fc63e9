"""
Beacon Wire Protocol

Design Decision: Message Format
===============================

Options Considered:
1. JSON - Human readable, any language can speak it, larger
2. MessagePack - Compact, needs a library on every peer
3. Custom binary - Most compact, hardest to keep compatible

Decision: JSON over UDP
- Peers in other languages can join with nothing but a JSON parser
- Beacons are small; size overhead is irrelevant on a LAN
- Easy to eyeball with tcpdump while debugging

Message Types:
- query:    "who is out there?" - every peer answers with an announce
- announce: "these services exist"
- renounce: "these services are gone"

Every message carries the sender's instance id so a process can
recognise (and ignore) its own beacons coming back via loopback.

Decoding never raises. A datagram that is not a well-formed message
decodes to None; a bad service entry inside a good message is skipped
on its own.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .service import ServiceDescriptor, ServiceRecord

logger = logging.getLogger(__name__)


class MessageType(Enum):
    """Beacon message types."""
    QUERY = "query"
    ANNOUNCE = "announce"
    RENOUNCE = "renounce"


@dataclass
class Message:
    """
    A single beacon.

    Every message contains:
    - type: query, announce or renounce
    - from_instance: instance id of the sending engine
    - records: services carried (always empty for queries)
    """
    type: MessageType
    from_instance: str
    records: List[ServiceRecord] = field(default_factory=list)


def encode_message(message: Message) -> bytes:
    """Serialize a message to UTF-8 JSON bytes."""
    data: Dict[str, Any] = {
        'eventType': message.type.value,
        'fromInstance': message.from_instance,
    }
    if message.type != MessageType.QUERY:
        data['services'] = [
            {
                'ownedByLocalSender': record.owned_locally,
                'descriptor': record.descriptor.to_dict(),
            }
            for record in message.records
        ]
    return json.dumps(data).encode('utf-8')


def decode_message(data: bytes) -> Optional[Message]:
    """
    Deserialize a datagram.

    Returns:
        The message, or None if the datagram as a whole is unusable
        (bad encoding, bad JSON, missing or unknown eventType, missing
        fromInstance).
    """
    try:
        parsed = json.loads(data.decode('utf-8'))
    except (UnicodeDecodeError, ValueError, RecursionError):
        # RecursionError: absurdly nested JSON from a hostile peer
        return None

    if not isinstance(parsed, dict):
        return None

    from_instance = parsed.get('fromInstance')
    if not isinstance(from_instance, str) or not from_instance:
        return None

    try:
        msg_type = MessageType(parsed.get('eventType'))
    except ValueError:
        return None

    records: List[ServiceRecord] = []
    if msg_type != MessageType.QUERY:
        entries = parsed.get('services')
        if isinstance(entries, list):
            for entry in entries:
                record = _decode_entry(entry)
                if record is not None:
                    records.append(record)

    return Message(type=msg_type, from_instance=from_instance, records=records)


def _decode_entry(entry: Any) -> Optional[ServiceRecord]:
    """Decode one service entry; None if it lacks a complete descriptor."""
    if not isinstance(entry, dict):
        return None
    raw = entry.get('descriptor')
    if not isinstance(raw, dict):
        return None
    try:
        descriptor = ServiceDescriptor.from_dict(raw)
    except RecursionError:
        logger.debug("Skipping service entry with over-nested fields")
        return None
    if not descriptor.is_complete:
        logger.debug(f"Skipping incomplete service entry {descriptor.key}")
        return None
    return ServiceRecord(
        descriptor=descriptor,
        owned_locally=bool(entry.get('ownedByLocalSender', False)),
    )


# Helper functions for creating specific message types

def create_query(instance_id: str) -> Message:
    """Create a query message."""
    return Message(type=MessageType.QUERY, from_instance=instance_id)


def create_announce(instance_id: str, records: List[ServiceRecord]) -> Message:
    """Create an announce message for the given records."""
    return Message(
        type=MessageType.ANNOUNCE,
        from_instance=instance_id,
        records=list(records),
    )


def create_renounce(instance_id: str, records: List[ServiceRecord]) -> Message:
    """Create a renounce message for the given records."""
    return Message(
        type=MessageType.RENOUNCE,
        from_instance=instance_id,
        records=list(records),
    )
