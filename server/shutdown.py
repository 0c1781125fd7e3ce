"""Server shutdown functions for the reference RCP host."""

import logging

from common.encoding import encode_control
from common.protocol import MsgType, Transport

logger = logging.getLogger(__name__)


def server_shutdown(port: Transport, conn_id: bytes) -> None:
    """Host responds to BYE with BYE_ACK."""
    logger.info("Server: responding to BYE")
    port.write(encode_control(MsgType.BYE_ACK, conn_id))
    logger.info("Server: shutdown complete")
