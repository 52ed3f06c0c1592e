"""
Wiring: pick the store backends from config and build every cache and
service around them.

Backends follow the environment: the SQL remote store when
USE_SQL_REMOTE_STORE and DATABASE_URL are set, else the REST remote store
(unconfigured without credentials); Redis for the local store when REDIS_URL
is set, else a JSON directory or plain memory.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import httpx

from fittings_portal.auth.admin_auth import AdminAuthService, AdminUserCache
from fittings_portal.auth.session_gate import SessionGate
from fittings_portal.cache.products import CategoryCache, ProductCache
from fittings_portal.cache.quotations import FollowUpCache, QuotationCache
from fittings_portal.cache.visitors import VisitorCache, VisitorSessionCache
from fittings_portal.config import PortalConfig
from fittings_portal.database.remote_store import RemoteStore, RestRemoteStore
from fittings_portal.integrations.email.emailjs_client import EmailJSClient
from fittings_portal.services.contact import ContactService
from fittings_portal.services.followup_manager import FollowUpManager
from fittings_portal.services.quotation_mailer import QuotationMailer
from fittings_portal.services.visitor_service import VisitorService

logger = logging.getLogger(__name__)


def make_remote_store(config: PortalConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> RemoteStore:
    cfg = config.remote_store
    if cfg.use_sql and cfg.database_url:
        from fittings_portal.database.remote_store_sql import SqlRemoteStore

        logger.info("Using SQL remote store")
        return SqlRemoteStore(cfg.database_url)
    return RestRemoteStore(cfg.url, cfg.anon_key, timeout_seconds=cfg.timeout_seconds, transport=transport)


def make_local_store(config: PortalConfig):
    cfg = config.local_store
    if cfg.redis_url:
        from fittings_portal.database.local_store_redis import RedisLocalStore

        logger.info("Using Redis local store")
        return RedisLocalStore(url=cfg.redis_url)
    from fittings_portal.database.local_store import LocalStore

    return LocalStore(cfg.directory)


@dataclass
class Portal:
    config: PortalConfig
    remote: RemoteStore
    local: object
    products: ProductCache
    categories: CategoryCache
    quotations: QuotationCache
    follow_ups: FollowUpCache
    visitors: VisitorCache
    visitor_sessions: VisitorSessionCache
    admin_users: AdminUserCache
    gate: SessionGate
    auth: AdminAuthService
    email: EmailJSClient
    mailer: QuotationMailer
    contact: ContactService
    visitor_service: VisitorService
    follow_up_manager: FollowUpManager

    async def refresh_all(self) -> None:
        await asyncio.gather(
            self.products.refetch(),
            self.categories.refetch(),
            self.quotations.refetch(),
            self.follow_ups.refetch(),
            self.visitors.refetch(),
            self.visitor_sessions.refetch(),
            self.admin_users.refetch(),
        )


def build_portal(
    config: PortalConfig,
    *,
    remote: Optional[RemoteStore] = None,
    local=None,
    email_transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Portal:
    remote = remote if remote is not None else make_remote_store(config)
    local = local if local is not None else make_local_store(config)

    bootstrap = None
    if config.admin.username and config.admin.password_hash:
        bootstrap = {
            "username": config.admin.username,
            "password_hash": config.admin.password_hash,
            "email": config.admin.email,
            "full_name": config.admin.full_name,
        }

    products = ProductCache(remote, local, clock=clock)
    categories = CategoryCache(remote, local, clock=clock)
    quotations = QuotationCache(remote, local, clock=clock)
    follow_ups = FollowUpCache(remote, local, clock=clock)
    visitors = VisitorCache(remote, local, clock=clock)
    visitor_sessions = VisitorSessionCache(remote, local, clock=clock)
    admin_users = AdminUserCache(remote, local, bootstrap=bootstrap, clock=clock)
    gate = SessionGate(local, ttl_hours=config.admin.session_ttl_hours, clock=clock)

    email = EmailJSClient(
        config.email.public_key,
        config.email.service_id,
        api_url=config.email.api_url,
        timeout_seconds=config.email.timeout_seconds,
        transport=email_transport,
    )

    return Portal(
        config=config,
        remote=remote,
        local=local,
        products=products,
        categories=categories,
        quotations=quotations,
        follow_ups=follow_ups,
        visitors=visitors,
        visitor_sessions=visitor_sessions,
        admin_users=admin_users,
        gate=gate,
        auth=AdminAuthService(admin_users, gate),
        email=email,
        mailer=QuotationMailer(quotations, email, config.company, config.email.quotation_template_id, clock=clock),
        contact=ContactService(email, config.email.contact_template_id),
        visitor_service=VisitorService(visitors, visitor_sessions, clock=clock),
        follow_up_manager=FollowUpManager(quotations, follow_ups, clock=clock),
    )
