"""Client shutdown functions for the RCP client."""

import logging
import time

from common.connection import Connection
from common.errors import ConnectionLostError
from common.io import send_message, wait_for
from common.protocol import BYE_WAIT_TIMEOUT_S, MsgType

logger = logging.getLogger(__name__)

BYE_INTERVAL_S = 0.5


def client_shutdown(conn: Connection, timeout_s: float = BYE_WAIT_TIMEOUT_S) -> bool:
    """Client initiates clean shutdown.

    Sends BYE and waits for BYE_ACK.
    Returns True if BYE_ACK received, False on timeout or if the link is
    already gone. Never raises for link failures.
    """
    logger.info("Client: initiating shutdown")
    start = time.monotonic()

    try:
        with conn.io_lock:
            while time.monotonic() - start < timeout_s:
                send_message(conn, MsgType.BYE)
                logger.debug("Client: sent BYE")
                remaining = timeout_s - (time.monotonic() - start)
                if wait_for(conn, {MsgType.BYE_ACK}, min(BYE_INTERVAL_S, max(remaining, 0.0))):
                    logger.info("Client: received BYE_ACK, shutdown complete")
                    return True
    except ConnectionLostError as e:
        logger.debug(f"Client: link already closed during shutdown ({e})")
        return False

    logger.warning("Client: BYE_ACK timeout, closing anyway")
    return False
