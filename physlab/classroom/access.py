"""
AccessGate - Network-location policy for classwork.

A classroom can restrict classwork to a single public address (typically
the school's). Homework is never restricted.

Address resolution prefers proxy headers. When the address seen is private
or loopback (local development), the server's own public address is looked
up instead so it can be compared with the public address teachers
configure.
"""

import ipaddress
import logging
from typing import Callable, Optional

import httpx

from physlab import config
from physlab.errors import NotFound
from physlab.schemas import AccessCheck, CollectionCategory

from .context import RequestContext
from .loader import ClassroomLoader

logger = logging.getLogger(__name__)

MAPPED_IPV4_PREFIX = "::ffff:"


def fetch_public_ip(url: Optional[str] = None, timeout: Optional[float] = None) -> str:
    """
    Look up this process's public address.

    Never raises: any network or decoding failure returns the loopback
    fallback address.
    """
    url = url or config.public_ip_url()
    timeout = config.ip_lookup_timeout() if timeout is None else timeout
    try:
        response = httpx.get(url, timeout=timeout)
        response.raise_for_status()
        ip = response.json().get("ip")
    except (httpx.HTTPError, ValueError, AttributeError) as e:
        logger.warning(f"Failed to fetch public IP fallback: {e}")
        return config.FALLBACK_IP
    if not ip:
        logger.warning("Public IP lookup returned no address")
        return config.FALLBACK_IP
    return str(ip)


def is_local_ip(ip: str) -> bool:
    """True for loopback and private ranges (and anything unparseable)."""
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return True
    return address.is_loopback or address.is_private


def extract_client_ip(ctx: RequestContext) -> str:
    """Client address as reported by proxies, falling back to the socket peer."""
    forwarded_for = ctx.header("x-forwarded-for")
    real_ip = ctx.header("x-real-ip")

    ip = None
    if forwarded_for:
        # leftmost entry is the original client
        ip = forwarded_for.split(",")[0].strip() or None
    ip = ip or (real_ip or "").strip() or ctx.remote_addr or config.FALLBACK_IP

    if ip.startswith(MAPPED_IPV4_PREFIX):
        ip = ip[len(MAPPED_IPV4_PREFIX):]
    return ip


class AccessGate:
    """
    Decide whether a caller may work on classwork of a classroom.

    The classroom policy is re-read on every check; nothing is cached
    beyond the request context.
    """

    def __init__(
        self,
        loader: ClassroomLoader,
        public_ip_lookup: Callable[[], str] = fetch_public_ip,
    ):
        """
        Initialize access gate.

        Args:
            loader: ClassroomLoader used to read classroom policy
            public_ip_lookup: Callable returning this server's public address
        """
        self.loader = loader
        self.public_ip_lookup = public_ip_lookup

    def resolve_ip(self, ctx: RequestContext) -> str:
        """Resolve (once per request) the address used for policy comparison."""
        if ctx.resolved_ip is not None:
            return ctx.resolved_ip

        ip = extract_client_ip(ctx)
        if is_local_ip(ip):
            logger.info(f"Client address {ip} is local, resolving public address")
            try:
                ip = self.public_ip_lookup() or config.FALLBACK_IP
            except Exception as e:
                # lookup is best-effort; gating must not fail the request
                logger.warning(f"Public IP lookup raised: {e}")
                ip = config.FALLBACK_IP

        ctx.resolved_ip = ip
        return ip

    def check_access(self, classroom_id: str, category, ctx: RequestContext) -> AccessCheck:
        """
        Check the classroom network policy for a collection category.

        Restricted only when the category is classwork, the classroom has the
        check enabled, an allowed address is configured, and the caller's
        address differs from it.

        Raises:
            NotFound: If the classroom does not exist
        """
        current_ip = self.resolve_ip(ctx)
        category = CollectionCategory(category) if category else CollectionCategory.HOMEWORK

        if category != CollectionCategory.CLASSWORK:
            return AccessCheck(restricted=False, current_ip=current_ip)

        classroom = self.loader.get_classroom(classroom_id)
        if classroom is None:
            raise NotFound("classroom", classroom_id)

        allowed_ip = (classroom.allowed_ip or "").strip()
        restricted = bool(
            classroom.ip_check_enabled
            and allowed_ip
            and current_ip != allowed_ip
        )
        if restricted:
            logger.info(
                f"Classwork access denied for {ctx.student_id} in {classroom_id}: "
                f"{current_ip} != {allowed_ip}"
            )
        return AccessCheck(restricted=restricted, current_ip=current_ip)
