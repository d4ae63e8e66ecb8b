from feedme.extensions import db
from feedme.utils.timeutils import utcnow
import uuid


def gen_org_id():
    return f"org_{uuid.uuid4().hex[:16]}"


class Organization(db.Model):
    __tablename__ = "organizations"

    id = db.Column(db.String(64), primary_key=True, default=gen_org_id)
    name = db.Column(db.String(255), nullable=False)
    logo_url = db.Column(db.String(1024))
    created_by = db.Column(db.String(64))
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
