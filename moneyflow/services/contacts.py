from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from moneyflow.core.errors import InvalidInput, NotFoundError
from moneyflow.models.contact import Contact, ContactFolder, ContactFolderMember
from moneyflow.schemas.contact import ContactCreate
from moneyflow.services.accounts import commit_or_raise, get_owned
from moneyflow.services.audit import log_event
from moneyflow.services.idempotency import make_key

CONTACT_SCOPE = "contacts:create"


def create_contact(
    s: Session,
    user_id: str,
    body: ContactCreate,
    idempotency_key: str | None = None,
) -> tuple[Contact, bool]:
    key = make_key(
        CONTACT_SCOPE,
        user_id,
        [body.name, body.email, body.phone_number, body.document, body.cbu, body.alias, body.iban],
        provided=idempotency_key or body.idempotency_key,
    )
    existing = s.execute(
        select(Contact).where(Contact.user_id == user_id, Contact.idempotency_key == key)
    ).scalar_one_or_none()
    if existing is not None:
        return existing, False

    c = Contact(user_id=user_id, idempotency_key=key, **body.model_dump(exclude={"idempotency_key"}))
    s.add(c)
    commit_or_raise(s, "insert", "contact already exists")
    s.refresh(c)
    log_event(s, user_id=user_id, action="contact.create", entity_type="contact", entity_id=c.id)
    return c, True


def list_contacts(s: Session, user_id: str, search: str | None = None) -> list[Contact]:
    q = select(Contact).where(Contact.user_id == user_id)
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        q = q.where(
            or_(
                Contact.name.ilike(like),
                Contact.display_name.ilike(like),
                Contact.email.ilike(like),
                Contact.alias.ilike(like),
            )
        )
    q = q.order_by(Contact.is_favorite.desc(), Contact.name.asc())
    return list(s.execute(q).scalars().all())


def find_contact(s: Session, user_id: str, cbu: str | None = None, alias: str | None = None) -> Contact:
    if not cbu and not alias:
        raise InvalidInput("cbu or alias is required")
    conds = []
    if cbu:
        conds.append(Contact.cbu == cbu.strip())
    if alias:
        conds.append(Contact.alias == alias.strip())
    c = s.execute(select(Contact).where(Contact.user_id == user_id, or_(*conds))).scalars().first()
    if c is None:
        raise NotFoundError("contact", cbu or alias)
    return c


def folder_contact_ids(s: Session, folder_id: str) -> list[str]:
    return list(
        s.execute(
            select(ContactFolderMember.contact_id)
            .where(ContactFolderMember.folder_id == folder_id)
            .order_by(ContactFolderMember.created_at.asc())
        ).scalars().all()
    )


def add_to_folder(s: Session, user_id: str, folder_id: str, contact_id: str) -> ContactFolderMember:
    get_owned(s, ContactFolder, user_id, folder_id, "contact_folder")
    get_owned(s, Contact, user_id, contact_id, "contact")
    existing = s.execute(
        select(ContactFolderMember).where(
            ContactFolderMember.folder_id == folder_id, ContactFolderMember.contact_id == contact_id
        )
    ).scalar_one_or_none()
    if existing is not None:
        return existing
    m = ContactFolderMember(folder_id=folder_id, contact_id=contact_id)
    s.add(m)
    commit_or_raise(s, "insert", "contact already in folder")
    s.refresh(m)
    return m


def remove_from_folder(s: Session, user_id: str, folder_id: str, contact_id: str) -> None:
    get_owned(s, ContactFolder, user_id, folder_id, "contact_folder")
    m = s.execute(
        select(ContactFolderMember).where(
            ContactFolderMember.folder_id == folder_id, ContactFolderMember.contact_id == contact_id
        )
    ).scalar_one_or_none()
    if m is None:
        raise NotFoundError("contact", contact_id)
    s.delete(m)
    commit_or_raise(s, "delete", "could not remove contact from folder")
