from __future__ import annotations

from collections import defaultdict

from domain.models import Application, ApplicationView, ProfileSummary
from services.persistence.base import RelationalStore


def join_views(
    db: RelationalStore, apps: list[Application], with_profiles: bool = True
) -> list[ApplicationView]:
    """Attach documents, admit cards and (optionally) applicant details; order is kept."""
    ids = [a.id for a in apps]
    docs = defaultdict(list)
    for d in db.list_documents(ids):
        docs[d.application_id].append(d)
    cards = {c.application_id: c for c in db.list_admit_cards(ids)}
    profiles = db.get_profiles(a.user_id for a in apps) if with_profiles else {}

    views = []
    for a in apps:
        p = profiles.get(a.user_id)
        views.append(
            ApplicationView(
                **a.model_dump(),
                profile=ProfileSummary(full_name=p.full_name, email=p.email, phone=p.phone) if p else None,
                documents=docs.get(a.id, []),
                admit_card=cards.get(a.id),
            )
        )
    return views
