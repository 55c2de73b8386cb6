from fastapi import APIRouter, Depends, Header, Query, Response
from sqlalchemy.orm import Session
from sqlalchemy import delete, select

from moneyflow.api.deps import db, current_user
from moneyflow.models.contact import Contact, ContactFolder, ContactFolderMember
from moneyflow.schemas.contact import ContactCreate, ContactOut, ContactUpdate, FolderCreate, FolderOut
from moneyflow.services import contacts as contact_service
from moneyflow.services.accounts import commit_or_raise, get_owned
from moneyflow.services.audit import log_event

router = APIRouter(prefix="/contacts", tags=["contacts"])
folders_router = APIRouter(prefix="/contact-folders", tags=["contacts"])


@router.get("", response_model=list[ContactOut])
def list_contacts(
    search: str | None = Query(None),
    s: Session = Depends(db),
    u=Depends(current_user),
):
    return contact_service.list_contacts(s, u["sub"], search)


@router.get("/lookup", response_model=ContactOut)
def lookup_contact(
    cbu: str | None = Query(None),
    alias: str | None = Query(None),
    s: Session = Depends(db),
    u=Depends(current_user),
):
    return contact_service.find_contact(s, u["sub"], cbu=cbu, alias=alias)


@router.post("", response_model=ContactOut, status_code=201)
def create_contact(
    body: ContactCreate,
    response: Response,
    u=Depends(current_user),
    key: str | None = Header(default=None, alias="Idempotency-Key"),
    s: Session = Depends(db),
):
    c, created = contact_service.create_contact(s, u["sub"], body, idempotency_key=key)
    if not created:
        response.status_code = 200
    return c


@router.patch("/{contact_id}", response_model=ContactOut)
def update_contact(contact_id: str, body: ContactUpdate, u=Depends(current_user), s: Session = Depends(db)):
    c = get_owned(s, Contact, u["sub"], contact_id, "contact")
    for k, v in body.model_dump(exclude_unset=True).items():
        setattr(c, k, v)
    commit_or_raise(s, "update", "could not update contact")
    s.refresh(c)
    return c


@router.delete("/{contact_id}")
def delete_contact(contact_id: str, s: Session = Depends(db), u=Depends(current_user)):
    c = get_owned(s, Contact, u["sub"], contact_id, "contact")
    s.execute(delete(ContactFolderMember).where(ContactFolderMember.contact_id == c.id))
    s.delete(c)
    commit_or_raise(s, "delete", "could not delete contact")
    log_event(s, user_id=u["sub"], action="contact.delete", entity_type="contact", entity_id=contact_id)
    return {"ok": True}


@folders_router.get("", response_model=list[FolderOut])
def list_folders(s: Session = Depends(db), u=Depends(current_user)):
    folders = s.execute(
        select(ContactFolder).where(ContactFolder.user_id == u["sub"]).order_by(ContactFolder.name.asc())
    ).scalars().all()
    return [
        FolderOut(id=f.id, name=f.name, color=f.color, icon=f.icon, contact_ids=contact_service.folder_contact_ids(s, f.id))
        for f in folders
    ]


@folders_router.post("", response_model=FolderOut, status_code=201)
def create_folder(body: FolderCreate, u=Depends(current_user), s: Session = Depends(db)):
    f = ContactFolder(user_id=u["sub"], **body.model_dump())
    s.add(f)
    commit_or_raise(s, "insert", "could not create folder")
    s.refresh(f)
    return FolderOut(id=f.id, name=f.name, color=f.color, icon=f.icon)


@folders_router.post("/{folder_id}/contacts/{contact_id}")
def add_contact(folder_id: str, contact_id: str, s: Session = Depends(db), u=Depends(current_user)):
    contact_service.add_to_folder(s, u["sub"], folder_id, contact_id)
    return {"ok": True}


@folders_router.delete("/{folder_id}/contacts/{contact_id}")
def remove_contact(folder_id: str, contact_id: str, s: Session = Depends(db), u=Depends(current_user)):
    contact_service.remove_from_folder(s, u["sub"], folder_id, contact_id)
    return {"ok": True}
