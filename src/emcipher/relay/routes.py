# Relay REST routes
#
#   POST /v1/conversations/{conv_id}/messages               store an envelope
#   GET  /v1/conversations/{conv_id}/messages               list pending envelopes
#   POST /v1/conversations/{conv_id}/messages/{msg_id}/ack  remove one envelope
#
# Field names and status codes are fixed by existing clients.

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from ..mailbox import RelayMailbox
from ..types import MailboxNotFound, RELAY_API_PREFIX

logger = logging.getLogger(__name__)

router = APIRouter(prefix=RELAY_API_PREFIX, tags=["relay"])


def get_mailbox(request: Request) -> RelayMailbox:
    """The mailbox owned by the running app."""
    return request.app.state.mailbox


# Handlers are plain functions so FastAPI runs them in its threadpool;
# the mailbox serializes access with threading locks.

@router.post("/{conv_id}/messages", status_code=201)
def post_message(
    conv_id: str,
    envelope: Dict[str, Any] = Body(...),
    mailbox: RelayMailbox = Depends(get_mailbox),
):
    """Append an opaque envelope to a conversation."""
    mailbox.append(conv_id, envelope)
    return {"ok": True}


@router.get("/{conv_id}/messages")
def get_messages(conv_id: str, mailbox: RelayMailbox = Depends(get_mailbox)):
    """List pending envelopes in insertion order."""
    msgs = mailbox.list(conv_id)
    return {"msgs": msgs}


@router.post("/{conv_id}/messages/{msg_id}/ack")
def ack_message(
    conv_id: str,
    msg_id: str,
    mailbox: RelayMailbox = Depends(get_mailbox),
):
    """Remove an acknowledged envelope."""
    try:
        mailbox.acknowledge(conv_id, msg_id)
    except MailboxNotFound:
        return JSONResponse(status_code=404, content={"ok": False, "err": "not found"})
    return {"ok": True}
