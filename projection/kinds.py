"""
projection/kinds.py — Per-kind projection tables
=================================================
Field mapping, fallback defaults, canonical filter and ordering for every
content kind. The fallback strings are part of the public contract: UIs and
tests compare them literally.

Kind            Filter (list_active)                         Order
--------------  -------------------------------------------  -----------------------------
blog            is_published                                 published_at DESC, id
project         is_active                                    created_at DESC, id
experience      -                                            start_date DESC, id
education       -                                            start_date DESC, id
certification   is_active                                    issue_date DESC, id
skill_category  is_active                                    sort_order ASC, id
testimonial     is_active, status in APPROVED|STAR           created_at DESC, id
hero            -                                            updated_at DESC, id
about           -                                            updated_at DESC, id

hero and about are single-record profile sections: the service returns the
first row in kind order (see CollectionQueryService.get_section). Their
fallbacks are empty strings so the page layout renders without gaps.
"""

from projection.projector import EntityKind, ReferenceSpec, RelationSpec

# Technique and skill names are kept in their base language on the profile pages.
BASE_NAME_LOCALE = "en"

PUBLIC_TESTIMONIAL_STATUSES = ("APPROVED", "STAR")


BLOG = EntityKind(
    name="blog",
    columns={
        "id": None,
        "slug": None,
        "image": "",
        "is_published": False,
        "published_at": None,
    },
    references=(
        ReferenceSpec(key="category", column="category_id", id_field="category_id",
                      name_field="category_name", fallback="Uncategorized"),
    ),
    localized={
        "title": "Untitled",
        "excerpt": "",
        "content": "",
        "meta_title": "",
        "meta_desc": "",
    },
    relations=(
        RelationSpec(key="tags", fallback="Unnamed Tag"),
    ),
    counts={"likes_count": "likes", "comments_count": "comments"},
    timestamp="published_at",
    active={"is_published": True},
)

PROJECT = EntityKind(
    name="project",
    columns={
        "id": None,
        "slug": None,
        "main_image": "",
        "gallery": list,
        "category": None,
        "live_url": None,
        "repo_url": None,
        "is_featured": False,
        "is_active": False,
        "created_at": None,
        "updated_at": None,
    },
    localized={
        "title": "Untitled Project",
        "description": "No description available",
        "content": None,
    },
    relations=(
        RelationSpec(key="tags", fallback="Unnamed Tag"),
        RelationSpec(key="techniques", fallback="Unnamed Technique", passthrough=("icon",)),
    ),
    timestamp="created_at",
    active={"is_active": True},
)

EXPERIENCE = EntityKind(
    name="experience",
    columns={
        "id": None,
        "company_name": "",
        "company_logo": None,
        "company_website": None,
        "location": None,
        "start_date": None,
        "end_date": None,
        "is_current": False,
        "updated_at": None,
    },
    localized={
        "role": "No {locale} role set",
        "employment_type": None,
        "description": None,
    },
    relations=(
        RelationSpec(key="techniques", fallback="Unknown Tech", passthrough=("icon",),
                     locale=BASE_NAME_LOCALE),
    ),
    timestamp="start_date",
)

EDUCATION = EntityKind(
    name="education",
    columns={
        "id": None,
        "school_name": "",
        "school_logo": None,
        "school_website": None,
        "location": None,
        "start_date": None,
        "end_date": None,
        "is_current": False,
        "updated_at": None,
    },
    localized={
        "degree": "No {locale} degree set",
        "field_of_study": None,
        "description": None,
    },
    relations=(
        RelationSpec(key="techniques", fallback="Unknown Skill", passthrough=("icon",),
                     locale=BASE_NAME_LOCALE),
    ),
    timestamp="start_date",
)

CERTIFICATION = EntityKind(
    name="certification",
    columns={
        "id": None,
        "issuer": "",
        "cover_url": None,
        "link": None,
        "issue_date": None,
        "expire_date": None,
        "credential_url": None,
        "is_active": False,
        "updated_at": None,
    },
    localized={
        "title": "No {locale} title set",
        "credential_id": None,
        "description": None,
    },
    timestamp="issue_date",
    active={"is_active": True},
)

SKILL_CATEGORY = EntityKind(
    name="skill_category",
    columns={
        "id": None,
        "icon": None,
        "sort_order": 0,
        "is_active": False,
    },
    localized={
        "title": "No {locale} title set",
    },
    relations=(
        RelationSpec(key="skills", fallback="Unknown Skill", passthrough=("level", "icon"),
                     locale=BASE_NAME_LOCALE),
    ),
    timestamp="updated_at",
    active={"is_active": True},
    order_by=(("sort_order", "asc"), ("id", "asc")),
)

# Testimonials are written by clients in their own language and are not translated.
TESTIMONIAL = EntityKind(
    name="testimonial",
    columns={
        "id": None,
        "client_name": "",
        "client_title": "",
        "role": None,
        "content": "",
        "rating": None,
        "avatar_url": None,
        "linkedin_url": None,
        "status": "PENDING",
        "is_active": False,
        "is_featured": False,
        "created_at": None,
    },
    timestamp="created_at",
    active={"is_active": True, "status": PUBLIC_TESTIMONIAL_STATUSES},
)


HERO = EntityKind(
    name="hero",
    columns={
        "id": None,
        "primary_image": "",
        "resume_url": None,
        "availability": "AVAILABLE",
        "is_active": False,
        "updated_at": None,
    },
    localized={
        "greeting": "",
        "name": "",
        "role": "",
        "description": "",
        "cta_text": "",
    },
    timestamp="updated_at",
)

ABOUT = EntityKind(
    name="about",
    columns={
        "id": None,
        "updated_at": None,
    },
    localized={
        "title": "",
        "subtitle": "",
        "description": "",
    },
    relations=(
        RelationSpec(key="statuses", fallback="", passthrough=("icon", "is_active"),
                     fields={"label": "", "value": ""}),
        RelationSpec(key="pillars", fallback="", passthrough=("icon",),
                     fields={"title": "", "description": ""}),
    ),
    timestamp="updated_at",
)


KINDS = {
    kind.name: kind
    for kind in (BLOG, PROJECT, EXPERIENCE, EDUCATION, CERTIFICATION, SKILL_CATEGORY, TESTIMONIAL,
                 HERO, ABOUT)
}


def get_kind(name) -> EntityKind:
    """Accept a kind or its name. Unknown names raise KeyError."""
    if isinstance(name, EntityKind):
        return name
    try:
        return KINDS[name]
    except KeyError:
        raise KeyError(f"Unknown content kind {name!r} (known: {', '.join(sorted(KINDS))})") from None
