import base64
import binascii
from shared.errors import ValidationError
from shared.projects import create_project
from shared.utils import api_handler, format_response, parse_body

MAX_ATTACHMENTS = 5


def _decode_attachments(raw):
    """Attachments arrive as [{filename, contentType, data: <base64>}]."""
    if not raw:
        return []
    if not isinstance(raw, list):
        raise ValidationError('attachments must be a list')
    if len(raw) > MAX_ATTACHMENTS:
        raise ValidationError(f"At most {MAX_ATTACHMENTS} attachments are allowed")

    attachments = []
    for item in raw:
        try:
            content = base64.b64decode(item.get('data') or '', validate=True)
        except (binascii.Error, ValueError, AttributeError):
            raise ValidationError('Attachment data must be base64 encoded')
        attachments.append({
            'filename': item.get('filename', ''),
            'contentType': item.get('contentType'),
            'content': content
        })
    return attachments


@api_handler
def handler(event, actor):
    """
    Handler for posting a new project (starts pending admin review).
    POST /projects
    """
    body = parse_body(event)
    attachments = _decode_attachments(body.pop('attachments', None))

    project = create_project(actor, body, attachments)
    return format_response(201, project)
