"""
app/main.py — Public Content API
================================
All routes return the {"status", "data", "meta"} JSON envelope.
Every collection is served already projected for one locale.

Language support:
  Collection routes accept the language two ways (priority order):
    1. ?lang=ar  query parameter
    2. Accept-Language: ar-EG,ar;q=0.9  HTTP header
  Unsupported or missing values fall back to the default locale.
  Path-prefixed routes (/{locale}/blogs) are strict: an unsupported
  locale is a 404, not a fallback.
  Every response includes meta.lang and meta.lang_label.

Routes:
  GET /health                          → liveness check
  GET /languages                       → supported locales + default
  GET /blogs          /blogs/{id}      → published posts
  GET /projects       /projects/{id}   → active projects
  GET /experiences    /experiences/{id}
  GET /educations     /educations/{id}
  GET /certifications /certifications/{id}
  GET /skills         /skills/{id}     → active skill categories with skills
  GET /testimonials   /testimonials/{id} → approved testimonials
  POST /testimonials                  → submit a testimonial (PENDING, hidden until moderated)
  GET /hero           /about           → single-record profile sections
  GET /{locale}/<collection>[/{id}]    → same, locale from the path (also /{locale}/hero, /{locale}/about)

A store outage renders as an empty list (200) or 404 for single items;
operators see the failure in the logs.
"""

import logging
import sqlite3
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from config_loader import load_config, setup_logging
from db.models import get_db, init_db, upsert_testimonial
from db.store import SQLiteContentStore
from projection.errors import UnsupportedLocale
from projection.locale import DEFAULT_LOCALE, LOCALE_LABELS, SUPPORTED_LOCALES, resolve
from projection.service import CollectionQueryService

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"

# URL segment → content kind
COLLECTIONS = {
    "blogs":          "blog",
    "projects":       "project",
    "experiences":    "experience",
    "educations":     "education",
    "certifications": "certification",
    "skills":         "skill_category",
    "testimonials":   "testimonial",
}

# Single-record profile sections (URL segment == kind)
SECTIONS = ("hero", "about")


# ─────────────────────────────────────────────────────────────────────────────
# SHARED HELPERS
# ─────────────────────────────────────────────────────────────────────────────

def ok(data: Any, meta: dict = None) -> dict:
    resp = {"status": "success", "data": data}
    if meta:
        resp["meta"] = meta
    return resp


def err(msg: str, code: int = 400) -> JSONResponse:
    return JSONResponse(
        status_code=code,
        content={"status": "error", "error": {"code": code, "message": msg}},
    )


# ─────────────────────────────────────────────────────────────────────────────
# LANGUAGE NEGOTIATION
# ─────────────────────────────────────────────────────────────────────────────

def negotiate_locale(lang_param: Optional[str],
                     accept_language: Optional[str],
                     supported=SUPPORTED_LOCALES,
                     default: str = DEFAULT_LOCALE) -> str:
    """
    Priority: ?lang= > Accept-Language header > default.
    Falls back silently for unsupported codes.
    """
    for candidate in (lang_param, best_accept_locale(accept_language, supported)):
        if not candidate:
            continue
        try:
            return resolve(candidate, supported)
        except UnsupportedLocale:
            continue
    return default


def best_accept_locale(header: Optional[str], supported=SUPPORTED_LOCALES) -> Optional[str]:
    """Parse 'ar-EG,ar;q=0.9,en;q=0.8' → highest-weighted supported locale."""
    if not header:
        return None
    best_locale, best_q = None, -1.0
    for part in header.replace(" ", "").split(","):
        tag_q = part.split(";")
        tag = tag_q[0].split("-")[0].lower()
        q = 1.0
        if len(tag_q) > 1 and tag_q[1].startswith("q="):
            try:
                q = float(tag_q[1][2:])
            except ValueError:
                pass
        if q <= 0:
            continue  # q=0: explicitly not acceptable
        if tag in supported and q > best_q:
            best_locale, best_q = tag, q
    return best_locale


def _lang_meta(app: FastAPI, locale: str) -> dict:
    return {"lang": locale, "lang_label": app.state.locale_labels.get(locale, locale)}


# ─────────────────────────────────────────────────────────────────────────────
# APP FACTORY
# ─────────────────────────────────────────────────────────────────────────────

def _rate_limit_key(request: Request) -> str:
    return get_remote_address(request)


def create_app(config: dict = None) -> FastAPI:
    """Create the public API. `config` defaults to load_config()."""
    config = config if config is not None else load_config()
    db_path = Path(config.get("db_path", "db/content.db"))
    i18n_cfg = config.get("i18n", {})
    rate = config.get("rate_limit", {}).get("default", "120/minute")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(db_path)
        logger.info(f"Content API ready (db={db_path}, locales={sorted(app.state.locales)})")
        yield

    app = FastAPI(
        title="Portfolio Content API",
        description="Localized portfolio content (blog, projects, profile) with EN/AR support.",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url=None,
    )

    app.state.config = config
    app.state.db_path = db_path
    app.state.locales = frozenset(i18n_cfg.get("supported_locales") or SUPPORTED_LOCALES)
    app.state.default_locale = i18n_cfg.get("default_locale", DEFAULT_LOCALE)
    app.state.locale_labels = {**LOCALE_LABELS, **(i18n_cfg.get("labels") or {})}
    app.state.service = CollectionQueryService(SQLiteContentStore(db_path))

    limiter = Limiter(key_func=_rate_limit_key, default_limits=[rate])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    security_cfg = config.get("security", {})
    app.add_middleware(ProxyHeadersMiddleware,
                       trusted_hosts=security_cfg.get("trusted_proxies", ["127.0.0.1", "::1"]))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=security_cfg.get("cors_origins", ["*"]),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {"status": "ok", "ts": time.time(), "version": APP_VERSION}

    @app.get("/languages", summary="Supported locales")
    @limiter.limit(rate)
    async def languages(request: Request):
        return ok({
            "languages": [
                {
                    "lang": locale,
                    "label": app.state.locale_labels.get(locale, locale),
                    "is_default": locale == app.state.default_locale,
                }
                for locale in sorted(app.state.locales)
            ],
            "default": app.state.default_locale,
        })

    _register_submission(app, limiter, config.get("rate_limit", {}).get("submit", "5/minute"))
    for collection, kind in COLLECTIONS.items():
        _register_collection(app, limiter, rate, collection, kind)
    for section in SECTIONS:
        _register_section(app, limiter, rate, section)

    return app


def _register_collection(app: FastAPI, limiter: Limiter, rate: str, collection: str, kind: str):
    """Wire list/detail routes for one collection, negotiated and path-prefixed."""

    def negotiated(lang, accept_language) -> str:
        return negotiate_locale(lang, accept_language, app.state.locales, app.state.default_locale)

    async def render_list(locale: str):
        rows = await app.state.service.list_active(kind, locale)
        return ok(
            {"collection": collection, "entries": rows},
            meta={"count": len(rows), **_lang_meta(app, locale)},
        )

    async def render_detail(entity_id: str, locale: str):
        dto = await app.state.service.get_by_id(kind, entity_id, locale, active_only=True)
        if dto is None:
            return err(f"{kind.replace('_', ' ').capitalize()} '{entity_id}' not found", 404)
        return ok(dto, meta=_lang_meta(app, locale))

    def strict(locale: str) -> Optional[str]:
        try:
            return resolve(locale, app.state.locales)
        except UnsupportedLocale:
            return None

    @limiter.limit(rate)
    async def list_route(
        request: Request,
        lang: Optional[str]            = Query(None, description="en | ar"),
        accept_language: Optional[str] = Header(None, alias="Accept-Language"),
    ):
        return await render_list(negotiated(lang, accept_language))

    @limiter.limit(rate)
    async def detail_route(
        request: Request,
        entity_id: str,
        lang: Optional[str]            = Query(None, description="en | ar"),
        accept_language: Optional[str] = Header(None, alias="Accept-Language"),
    ):
        return await render_detail(entity_id, negotiated(lang, accept_language))

    @limiter.limit(rate)
    async def prefixed_list_route(request: Request, locale: str):
        resolved = strict(locale)
        if resolved is None:
            return err(f"Unsupported locale '{locale}'", 404)
        return await render_list(resolved)

    @limiter.limit(rate)
    async def prefixed_detail_route(request: Request, locale: str, entity_id: str):
        resolved = strict(locale)
        if resolved is None:
            return err(f"Unsupported locale '{locale}'", 404)
        return await render_detail(entity_id, resolved)

    name = collection.capitalize()
    app.add_api_route(f"/{collection}", list_route, methods=["GET"],
                      summary=f"{name} (translated)", name=f"{collection}_list")
    app.add_api_route(f"/{collection}/{{entity_id}}", detail_route, methods=["GET"],
                      summary=f"Single {kind} (translated)", name=f"{collection}_detail")
    app.add_api_route(f"/{{locale}}/{collection}", prefixed_list_route, methods=["GET"],
                      summary=f"{name} in the path locale", name=f"{collection}_list_prefixed")
    app.add_api_route(f"/{{locale}}/{collection}/{{entity_id}}", prefixed_detail_route,
                      methods=["GET"], summary=f"Single {kind} in the path locale",
                      name=f"{collection}_detail_prefixed")


class TestimonialSubmission(BaseModel):
    client_name: str = Field(min_length=2)
    client_title: str = Field(min_length=2)
    role: Optional[str] = None
    content: str = Field(min_length=10)
    rating: int = Field(default=5, ge=1, le=5)
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    linkedin_url: Optional[str] = None


def _register_submission(app: FastAPI, limiter: Limiter, rate: str):
    """POST /testimonials: stored as PENDING and inactive, the admin queue decides."""

    @limiter.limit(rate)
    async def submit_testimonial(request: Request, body: TestimonialSubmission):
        data = body.model_dump()
        data.update(status="PENDING", is_active=False, is_featured=False)
        conn = get_db(app.state.db_path)
        try:
            with conn:
                testimonial_id = upsert_testimonial(conn, data)
        except sqlite3.Error as e:
            logger.error(f"Testimonial submission failed: {e}", exc_info=True)
            return err("Could not save the testimonial, try again later", 503)
        finally:
            conn.close()
        logger.info(f"Testimonial {testimonial_id} submitted for review")
        return JSONResponse(status_code=201, content=ok(
            {"id": testimonial_id, "status": "PENDING", "message": "Submitted for review!"}
        ))

    app.add_api_route("/testimonials", submit_testimonial, methods=["POST"],
                      summary="Submit a testimonial for moderation", name="testimonials_submit")


def _register_section(app: FastAPI, limiter: Limiter, rate: str, section: str):
    """GET /{section} and /{locale}/{section} for a single-record section."""

    async def render(locale: str):
        dto = await app.state.service.get_section(section, locale)
        if dto is None:
            return err(f"No {section} section", 404)
        return ok(dto, meta=_lang_meta(app, locale))

    @limiter.limit(rate)
    async def section_route(
        request: Request,
        lang: Optional[str]            = Query(None, description="en | ar"),
        accept_language: Optional[str] = Header(None, alias="Accept-Language"),
    ):
        return await render(negotiate_locale(lang, accept_language,
                                             app.state.locales, app.state.default_locale))

    @limiter.limit(rate)
    async def prefixed_section_route(request: Request, locale: str):
        try:
            resolved = resolve(locale, app.state.locales)
        except UnsupportedLocale:
            return err(f"Unsupported locale '{locale}'", 404)
        return await render(resolved)

    app.add_api_route(f"/{section}", section_route, methods=["GET"],
                      summary=f"{section.capitalize()} section (translated)", name=section)
    app.add_api_route(f"/{{locale}}/{section}", prefixed_section_route, methods=["GET"],
                      summary=f"{section.capitalize()} section in the path locale",
                      name=f"{section}_prefixed")


# Allow uvicorn/gunicorn to import the app directly
app = create_app()


if __name__ == "__main__":
    import uvicorn

    _config = app.state.config
    setup_logging(_config)
    server_cfg = _config.get("server", {})
    uvicorn.run(app, host=server_cfg.get("host", "0.0.0.0"), port=server_cfg.get("port", 8000))
