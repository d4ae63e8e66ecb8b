from feedme.extensions import db
from feedme.utils.timeutils import utcnow, isoformat


class User(db.Model):
    __tablename__ = "users"

    # external identity provider id
    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(255), index=True)
    first_name = db.Column(db.String(120))
    last_name = db.Column(db.String(120))
    role = db.Column(db.String(20), nullable=False, default="employee")
    company_id = db.Column(
        db.String(64),
        db.ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    profile_image_url = db.Column(db.String(1024))
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    company = db.relationship("Organization", foreign_keys=[company_id], lazy=True)

    @property
    def display_name(self):
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name or self.email or "Unknown User"

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "company_id": self.company_id,
            "profile_image_url": self.profile_image_url,
            "created_at": isoformat(self.created_at),
        }
