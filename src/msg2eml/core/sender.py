"""From/Sender resolution, including "send on behalf of" detection.

Exchange stores two identities on a message:

* ``PidTagSender*``: the mailbox that actually sent the message;
* ``PidTagSentRepresenting*``: the mailbox the message was sent for.

When they differ, RFC 5322 puts the represented mailbox in ``From`` and the
actual sender in ``Sender``.
"""

from msg2eml.core import properties as props
from msg2eml.core.constants import UNKNOWN_SENDER
from msg2eml.core.encoding import encode_display_name
from msg2eml.core.models import SenderInfo, SenderResolution
from msg2eml.core.properties import PropertySource, PropertyTag, safe_property
from msg2eml.core.transport import extract_header_value, parse_address_list


def _lookup(source: PropertySource, *tags: PropertyTag) -> str | None:
    for tag in tags:
        value = safe_property(source, tag)
        if value:
            return value
    return None


def extract_actual_sender(source: PropertySource) -> SenderInfo:
    # SMTP address is preferred over the X500/Exchange address
    return SenderInfo(
        email=_lookup(source, props.PID_TAG_SENDER_SMTP_ADDRESS, props.PID_TAG_SENDER_EMAIL_ADDRESS),
        name=_lookup(source, props.PID_TAG_SENDER_NAME),
    )


def extract_represented_sender(source: PropertySource) -> SenderInfo:
    return SenderInfo(
        email=_lookup(
            source,
            props.PID_TAG_SENT_REPRESENTING_SMTP_ADDRESS,
            props.PID_TAG_SENT_REPRESENTING_EMAIL_ADDRESS,
        ),
        name=_lookup(source, props.PID_TAG_SENT_REPRESENTING_NAME),
    )


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def is_on_behalf_of(actual: SenderInfo, represented: SenderInfo) -> bool:
    """Check whether the actual sender differs from the represented sender."""
    if actual.is_empty or represented.is_empty:
        return False

    if actual.email and represented.email:
        return _normalize_email(actual.email) != _normalize_email(represented.email)

    if not actual.email and not represented.email:
        return (actual.name or "").strip() != (represented.name or "").strip()

    # Only one side has an address
    return True


def parse_from_transport_headers(transport_headers: str | None) -> SenderInfo | None:
    """Read the sender from the ``From:`` line of the transport headers."""
    if not transport_headers:
        return None

    value = extract_header_value(transport_headers, "From")
    if not value:
        return None

    addresses = parse_address_list(value)
    if not addresses:
        return None

    address = addresses[0]
    return SenderInfo(email=address.email, name=address.name)


def extract_sender_info(source: PropertySource, transport_headers: str | None = None) -> SenderResolution:
    """Resolve the From and (when delegated) Sender identities of a message.

    Args:
        source: Message properties.
        transport_headers: Raw transport header block, used when neither
            identity carries any data.

    Returns:
        The resolved identities.
    """
    actual = extract_actual_sender(source)
    represented = extract_represented_sender(source)

    if is_on_behalf_of(actual, represented):
        return SenderResolution(from_=represented, sender=actual, is_on_behalf_of=True)

    best = SenderInfo(
        email=actual.email or represented.email,
        name=actual.name or represented.name,
    )
    if best.is_empty:
        best = parse_from_transport_headers(transport_headers) or best

    return SenderResolution(from_=best)


def format_sender(email: str | None, name: str | None) -> str:
    """Format a mailbox for the From/Sender header."""
    if name and email and name != email:
        return f"{encode_display_name(name)} <{email}>"
    return email or name or UNKNOWN_SENDER
