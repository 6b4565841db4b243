# Admin Router
# Purpose: Content editing endpoints (canonical records + per-locale translations) and admin tables
# Main functions: dashboard, unfiltered content tables, upserts, hero/about sections, moderation, deletes
# Dependent files: admin/dependencies/access_control.py, db/models.py, projection/service.py

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import Optional
import asyncio
import logging
import sqlite3
from pydantic import BaseModel, Field

from admin.dependencies.access_control import get_admin_context, get_current_admin_user
from db.models import (
    get_db, get_row, get_translations, delete_translation, delete_entity,
    upsert_blog, upsert_project, upsert_experience, upsert_education,
    upsert_certification, upsert_skill_category, upsert_testimonial,
    upsert_tag, upsert_technique, upsert_category, set_testimonial_status,
    upsert_hero, upsert_about,
    PROJECT_CATEGORIES, TESTIMONIAL_STATUSES, TRANSLATIONS,
)
from projection.errors import AdminAccessRequired
from projection.kinds import KINDS
from projection.service import AccessContext

logger = logging.getLogger(__name__)

# Relation items can be deleted but have no admin table of their own
ITEM_KINDS = ("tag", "technique", "category")


# --- Pydantic models ---


class NewItem(BaseModel):
    name: str = Field(min_length=2)
    icon: Optional[str] = None


class BlogTranslation(BaseModel):
    title: str = Field(min_length=1)
    excerpt: Optional[str] = None
    content: Optional[str] = None
    meta_title: Optional[str] = None
    meta_desc: Optional[str] = None


class BlogUpsert(BaseModel):
    id: Optional[str] = None
    slug: str = Field(min_length=3, max_length=100)
    image: Optional[str] = None
    category_id: Optional[str] = None
    is_published: bool = False
    locale: str = "en"
    translations: dict[str, BlogTranslation] = {}
    tag_ids: list[str] = []
    new_tags: list[NewItem] = []


class ProjectTranslation(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    content: Optional[str] = None


class ProjectUpsert(BaseModel):
    id: Optional[str] = None
    slug: str = Field(min_length=3, max_length=50)
    main_image: Optional[str] = None
    gallery: list[str] = []
    category: str = "OTHER"
    live_url: Optional[str] = None
    repo_url: Optional[str] = None
    is_featured: bool = False
    is_active: bool = True
    locale: str = "en"
    translations: dict[str, ProjectTranslation] = {}
    tag_ids: list[str] = []
    new_tags: list[NewItem] = []
    technique_ids: list[str] = []
    new_techniques: list[NewItem] = []


class ExperienceTranslation(BaseModel):
    role: Optional[str] = None
    employment_type: Optional[str] = None
    description: Optional[str] = None


class ExperienceUpsert(BaseModel):
    id: Optional[str] = None
    company_name: str = Field(min_length=1)
    company_logo: Optional[str] = None
    company_website: Optional[str] = None
    location: Optional[str] = None
    start_date: str
    end_date: Optional[str] = None
    is_current: bool = False
    translations: dict[str, ExperienceTranslation] = {}
    technique_ids: list[str] = []


class EducationTranslation(BaseModel):
    degree: Optional[str] = None
    field_of_study: Optional[str] = None
    description: Optional[str] = None


class EducationUpsert(BaseModel):
    id: Optional[str] = None
    school_name: str = Field(min_length=1)
    school_logo: Optional[str] = None
    school_website: Optional[str] = None
    location: Optional[str] = None
    start_date: str
    end_date: Optional[str] = None
    is_current: bool = False
    translations: dict[str, EducationTranslation] = {}
    technique_ids: list[str] = []


class CertificationTranslation(BaseModel):
    title: Optional[str] = None
    credential_id: Optional[str] = None
    description: Optional[str] = None


class CertificationUpsert(BaseModel):
    id: Optional[str] = None
    issuer: str = Field(min_length=1)
    cover_url: Optional[str] = None
    link: Optional[str] = None
    issue_date: str
    expire_date: Optional[str] = None
    credential_url: Optional[str] = None
    is_active: bool = True
    translations: dict[str, CertificationTranslation] = {}


class SkillIn(BaseModel):
    id: Optional[str] = None
    level: Optional[int] = Field(default=None, ge=0, le=100)
    icon: Optional[str] = None
    names: dict[str, str] = {}


class SkillCategoryTranslation(BaseModel):
    title: Optional[str] = None


class SkillCategoryUpsert(BaseModel):
    id: Optional[str] = None
    icon: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True
    translations: dict[str, SkillCategoryTranslation] = {}
    skills: list[SkillIn] = []


class TestimonialUpsert(BaseModel):
    id: Optional[str] = None
    client_name: str = Field(min_length=2)
    client_title: Optional[str] = None
    role: Optional[str] = None
    content: str = Field(min_length=10)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    avatar_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    email: Optional[str] = None
    status: str = "PENDING"
    is_active: bool = True
    is_featured: bool = False


class StatusUpdate(BaseModel):
    status: str


class ItemUpsert(BaseModel):
    id: Optional[str] = None
    icon: Optional[str] = None
    names: dict[str, str] = {}


class HeroTranslation(BaseModel):
    greeting: str = Field(min_length=1)
    name: str = Field(min_length=1)
    role: str = Field(min_length=1)
    description: str = Field(min_length=1)
    cta_text: str = Field(min_length=1)


class HeroUpsert(BaseModel):
    primary_image: str = Field(min_length=1)
    resume_url: Optional[str] = None
    availability: str = "AVAILABLE"
    is_active: bool = True
    translations: dict[str, HeroTranslation] = {}


class AboutTranslation(BaseModel):
    title: str = Field(min_length=1)
    subtitle: Optional[str] = None
    description: str = Field(min_length=1)


class StatusTranslation(BaseModel):
    label: str = Field(min_length=1)
    value: str = Field(min_length=1)


class AboutStatusIn(BaseModel):
    id: Optional[str] = None
    icon: Optional[str] = None
    is_active: bool = True
    translations: dict[str, StatusTranslation] = {}


class PillarTranslation(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)


class PillarIn(BaseModel):
    id: Optional[str] = None
    icon: str = Field(min_length=1)
    translations: dict[str, PillarTranslation] = {}


class AboutUpsert(BaseModel):
    translations: dict[str, AboutTranslation] = {}
    statuses: list[AboutStatusIn] = []
    pillars: list[PillarIn] = []


# --- Helpers ---

def _get_db_conn(request: Request) -> sqlite3.Connection:
    """Get a connection to the content database."""
    return get_db(request.app.state.db_path)


def _check_locales(request: Request, *locales: str):
    unsupported = sorted({loc for loc in locales if loc not in request.app.state.locales})
    if unsupported:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported locale(s): {', '.join(unsupported)} "
                   f"(supported: {', '.join(sorted(request.app.state.locales))})",
        )


def _check_kind(kind: str, allowed=None):
    allowed = allowed if allowed is not None else KINDS
    if kind not in allowed:
        raise HTTPException(status_code=404, detail=f"Unknown content kind '{kind}'")


def _save(request: Request, kind: str, fn, data: dict) -> dict:
    """Run one write helper in a transaction and map constraint errors to 409."""
    conn = _get_db_conn(request)
    try:
        with conn:
            entity_id = fn(conn, data)
    except sqlite3.IntegrityError as e:
        logger.warning(f"Rejected {kind} upsert: {e}")
        if "UNIQUE" in str(e) and "slug" in str(e):
            raise HTTPException(status_code=409, detail=f"A {kind} with this slug already exists.")
        raise HTTPException(status_code=409, detail=f"Constraint violated: {e}")
    finally:
        conn.close()

    logger.info(f"Saved {kind} {entity_id}")
    return {"id": entity_id, "kind": kind, "message": f"{kind} saved"}


def _dump_translations(model) -> dict:
    return {loc: t.model_dump() for loc, t in model.translations.items()}


# --- ROUTER SETUP ---

router = APIRouter()


@router.get("/")
async def admin_root():
    """Admin root — health check (no auth required for Docker healthcheck)."""
    return {"message": "Content Admin Backend", "status": "active"}


# ============================================================================
# DASHBOARD
# ============================================================================

@router.get("/dashboard")
async def dashboard(request: Request, _user: dict = Depends(get_current_admin_user)):
    """Active record counts per kind plus user count, fetched concurrently."""
    service = request.app.state.service
    names = list(KINDS)
    counts = await asyncio.gather(
        *(service.count_active(name) for name in names),
        service.count("user"),
    )
    return {
        "active": dict(zip(names, counts[:-1])),
        "users": counts[-1],
    }


# ============================================================================
# CONTENT TABLES (unfiltered: drafts, inactive, pending included)
# ============================================================================

@router.get("/content/{kind}")
async def list_content(
    kind: str,
    request: Request,
    lang: Optional[str] = Query(None, description="Locale to project the table in (default: configured)"),
    context: AccessContext = Depends(get_admin_context),
):
    _check_kind(kind)
    lang = lang or request.app.state.default_locale
    _check_locales(request, lang)
    try:
        rows = await request.app.state.service.list_all(kind, lang, context)
    except AdminAccessRequired as e:
        raise HTTPException(status_code=403, detail=str(e))
    return {"kind": kind, "lang": lang, "entries": rows, "count": len(rows)}


@router.get("/content/{kind}/{entity_id}")
async def get_content(
    kind: str,
    entity_id: str,
    request: Request,
    lang: Optional[str] = Query(None),
    _user: dict = Depends(get_current_admin_user),
):
    """Projected record plus every stored translation (edit form state)."""
    _check_kind(kind)
    lang = lang or request.app.state.default_locale
    _check_locales(request, lang)
    dto = await request.app.state.service.get_by_id(kind, entity_id, lang)
    if dto is None:
        raise HTTPException(status_code=404, detail=f"{kind} '{entity_id}' not found")

    translations = []
    if kind in TRANSLATIONS:
        conn = _get_db_conn(request)
        try:
            translations = get_translations(conn, kind, entity_id)
        finally:
            conn.close()
    return {"entity": dto, "translations": translations}


@router.delete("/content/{kind}/{entity_id}")
async def delete_content(
    kind: str,
    entity_id: str,
    request: Request,
    _user: dict = Depends(get_current_admin_user),
):
    _check_kind(kind, allowed=(*KINDS, *ITEM_KINDS))
    conn = _get_db_conn(request)
    try:
        with conn:
            deleted = delete_entity(conn, kind, entity_id)
    finally:
        conn.close()
    if not deleted:
        raise HTTPException(status_code=404, detail=f"{kind} '{entity_id}' not found")

    logger.info(f"Deleted {kind} {entity_id}")
    return {"message": f"{kind} {entity_id} deleted"}


@router.delete("/content/{kind}/{entity_id}/translations/{locale}")
async def remove_translation(
    kind: str,
    entity_id: str,
    locale: str,
    request: Request,
    _user: dict = Depends(get_current_admin_user),
):
    if kind not in TRANSLATIONS:
        raise HTTPException(status_code=404, detail=f"'{kind}' has no translations")
    conn = _get_db_conn(request)
    try:
        with conn:
            deleted = delete_translation(conn, kind, entity_id, locale)
    finally:
        conn.close()
    if not deleted:
        raise HTTPException(status_code=404, detail=f"No {locale} translation for {kind} '{entity_id}'")
    return {"message": f"{locale} translation of {kind} {entity_id} removed"}


# ============================================================================
# UPSERTS
# ============================================================================

@router.put("/blogs")
async def save_blog(body: BlogUpsert, request: Request,
                    _user: dict = Depends(get_current_admin_user)):
    _check_locales(request, body.locale, *body.translations)
    data = body.model_dump()
    data["translations"] = _dump_translations(body)
    return _save(request, "blog", upsert_blog, data)


@router.put("/projects")
async def save_project(body: ProjectUpsert, request: Request,
                       _user: dict = Depends(get_current_admin_user)):
    _check_locales(request, body.locale, *body.translations)
    if body.category not in PROJECT_CATEGORIES:
        raise HTTPException(status_code=400,
                            detail=f"category must be one of {', '.join(PROJECT_CATEGORIES)}")
    if not body.tag_ids and not body.new_tags:
        raise HTTPException(status_code=400, detail="Select at least one existing tag or add a new one")
    if not body.technique_ids and not body.new_techniques:
        raise HTTPException(status_code=400, detail="Select at least one technique or add a new one")
    data = body.model_dump()
    data["translations"] = _dump_translations(body)
    return _save(request, "project", upsert_project, data)


@router.put("/experiences")
async def save_experience(body: ExperienceUpsert, request: Request,
                          _user: dict = Depends(get_current_admin_user)):
    _check_locales(request, *body.translations)
    data = body.model_dump()
    data["translations"] = _dump_translations(body)
    return _save(request, "experience", upsert_experience, data)


@router.put("/educations")
async def save_education(body: EducationUpsert, request: Request,
                         _user: dict = Depends(get_current_admin_user)):
    _check_locales(request, *body.translations)
    data = body.model_dump()
    data["translations"] = _dump_translations(body)
    return _save(request, "education", upsert_education, data)


@router.put("/certifications")
async def save_certification(body: CertificationUpsert, request: Request,
                             _user: dict = Depends(get_current_admin_user)):
    _check_locales(request, *body.translations)
    data = body.model_dump()
    data["translations"] = _dump_translations(body)
    return _save(request, "certification", upsert_certification, data)


@router.put("/skills")
async def save_skill_category(body: SkillCategoryUpsert, request: Request,
                              _user: dict = Depends(get_current_admin_user)):
    _check_locales(request, *body.translations, *(loc for s in body.skills for loc in s.names))
    data = body.model_dump()
    data["translations"] = _dump_translations(body)
    return _save(request, "skill_category", upsert_skill_category, data)


@router.put("/testimonials")
async def save_testimonial(body: TestimonialUpsert, request: Request,
                           _user: dict = Depends(get_current_admin_user)):
    if body.status not in TESTIMONIAL_STATUSES:
        raise HTTPException(status_code=400,
                            detail=f"status must be one of {', '.join(TESTIMONIAL_STATUSES)}")
    return _save(request, "testimonial", upsert_testimonial, body.model_dump())


@router.patch("/testimonials/{testimonial_id}/status")
async def moderate_testimonial(testimonial_id: str, body: StatusUpdate, request: Request,
                               _user: dict = Depends(get_current_admin_user)):
    if body.status not in TESTIMONIAL_STATUSES:
        raise HTTPException(status_code=400,
                            detail=f"status must be one of {', '.join(TESTIMONIAL_STATUSES)}")
    conn = _get_db_conn(request)
    try:
        with conn:
            updated = set_testimonial_status(conn, testimonial_id, body.status)
            row = get_row(conn, "testimonial", testimonial_id) if updated else None
    finally:
        conn.close()
    if not updated:
        raise HTTPException(status_code=404, detail=f"Testimonial '{testimonial_id}' not found")

    logger.info(f"Testimonial {testimonial_id} → {body.status}")
    return {"id": testimonial_id, "status": row["status"], "client_name": row["client_name"]}


# ============================================================================
# RELATION ITEMS (tags, techniques, categories)
# ============================================================================

@router.put("/tags")
async def save_tag(body: ItemUpsert, request: Request,
                   _user: dict = Depends(get_current_admin_user)):
    _check_locales(request, *body.names)
    return _save(request, "tag",
                 lambda conn, d: upsert_tag(conn, d["names"], tag_id=d["id"]), body.model_dump())


@router.put("/techniques")
async def save_technique(body: ItemUpsert, request: Request,
                         _user: dict = Depends(get_current_admin_user)):
    _check_locales(request, *body.names)
    return _save(request, "technique",
                 lambda conn, d: upsert_technique(conn, d["names"], icon=d["icon"], technique_id=d["id"]),
                 body.model_dump())


@router.put("/categories")
async def save_category(body: ItemUpsert, request: Request,
                        _user: dict = Depends(get_current_admin_user)):
    _check_locales(request, *body.names)
    return _save(request, "category",
                 lambda conn, d: upsert_category(conn, d["names"], category_id=d["id"]),
                 body.model_dump())


# ============================================================================
# PROFILE SECTIONS (hero, about)
# ============================================================================

@router.put("/hero")
async def save_hero(body: HeroUpsert, request: Request,
                    _user: dict = Depends(get_current_admin_user)):
    _check_locales(request, *body.translations)
    data = body.model_dump()
    data["translations"] = _dump_translations(body)
    return _save(request, "hero", upsert_hero, data)


@router.put("/about")
async def save_about(body: AboutUpsert, request: Request,
                     _user: dict = Depends(get_current_admin_user)):
    _check_locales(request, *body.translations,
                   *(loc for item in (*body.statuses, *body.pillars) for loc in item.translations))
    # Lists left out of the body keep their stored items
    return _save(request, "about", upsert_about, body.model_dump(exclude_unset=True))
