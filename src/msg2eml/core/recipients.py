"""Recipient resolution for To/Cc/Bcc headers."""

from msg2eml.core import properties as props
from msg2eml.core.encoding import encode_display_name
from msg2eml.core.models import Recipient, RecipientType
from msg2eml.core.properties import PropertyNode, safe_property
from msg2eml.core.transport import TransportRecipients


def recipient_type_from_code(code: int | None) -> RecipientType:
    """Map PidTagRecipientType (MAPI_TO = 1, MAPI_CC = 2, MAPI_BCC = 3)."""
    if code == 2:
        return RecipientType.CC
    if code == 3:
        return RecipientType.BCC
    return RecipientType.TO


def resolve_email_from_transport_headers(
    display_name: str,
    recipient_type: RecipientType,
    transport_recipients: TransportRecipients,
) -> str | None:
    """Find an address whose display name matches, same header type first."""
    if not display_name:
        return None

    wanted = display_name.strip().lower()
    for addresses in (transport_recipients.for_type(recipient_type), transport_recipients.all):
        for address in addresses:
            if address.email and address.name and address.name.strip().lower() == wanted:
                return address.email
    return None


def parse_recipient(
    node: PropertyNode,
    transport_recipients: TransportRecipients | None = None,
) -> Recipient:
    """Build a recipient from its MAPI properties.

    The SMTP address is preferred over the X500/Exchange address. When the
    message carries neither, the display name is matched against the
    transport headers; failing that, the display name itself is used.
    """
    name = safe_property(node, props.PID_TAG_DISPLAY_NAME) or ""
    type_code = safe_property(node, props.PID_TAG_RECIPIENT_TYPE)
    recipient_type = recipient_type_from_code(int(type_code) if type_code is not None else None)

    email = safe_property(node, props.PID_TAG_SMTP_ADDRESS) or safe_property(
        node, props.PID_TAG_EMAIL_ADDRESS
    )
    if not email and name and transport_recipients is not None:
        email = resolve_email_from_transport_headers(name, recipient_type, transport_recipients)

    return Recipient(name=name, email=email or name, type=recipient_type)


def format_recipient(recipient: Recipient) -> str:
    """Format a recipient as ``"Name" <email>`` or a bare address."""
    if recipient.name and recipient.name != recipient.email:
        return f"{encode_display_name(recipient.name)} <{recipient.email}>"
    return recipient.email
