import logging

logger = logging.getLogger("soulcypher")
