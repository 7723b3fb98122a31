import json
from datetime import datetime
from models.db import db

# association table for many-to-many User <-> Role
user_roles = db.Table(
    "user_roles",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("role_id", db.Integer, db.ForeignKey("roles.id"), primary_key=True),
)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(80), nullable=True)
    last_name = db.Column(db.String(80), nullable=True)
    phone_number = db.Column(db.String(30), nullable=True)

    has_signed_waiver = db.Column(db.Boolean, default=False, nullable=False)
    waiver_signed_at = db.Column(db.DateTime, nullable=True)

    # Coach profile (only meaningful when is_coach)
    is_coach = db.Column(db.Boolean, default=False, nullable=False, index=True)
    coaching_rate = db.Column(db.Integer, nullable=True)  # per hour, minor units
    bio = db.Column(db.Text, nullable=True)
    specialties_json = db.Column(db.Text, nullable=True)
    dupr_rating = db.Column(db.Float, nullable=True)

    stripe_customer_id = db.Column(db.String(255), nullable=True, unique=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    roles = db.relationship("Role", secondary=user_roles, back_populates="users")

    @property
    def specialties(self):
        return json.loads(self.specialties_json) if self.specialties_json else []

    @specialties.setter
    def specialties(self, values):
        self.specialties_json = json.dumps(list(values)) if values else None

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or self.email

    @property
    def last_initial(self) -> str:
        return (self.last_name or "")[:1]

    def role_names(self):
        return [r.name for r in self.roles]

    def coach_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "coaching_rate": self.coaching_rate,
            "bio": self.bio,
            "specialties": self.specialties,
            "dupr_rating": self.dupr_rating,
        }


class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)  # PLAYER, COACH, ADMIN

    users = db.relationship("User", secondary=user_roles, back_populates="roles")
