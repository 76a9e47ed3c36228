from datetime import datetime

from roster_api.extensions import db


class Client(db.Model):
    __tablename__ = "clients"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    company = db.Column(db.String(255), nullable=True)
    client_instruction = db.Column(db.Text, nullable=True)
    property_info = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "client_instruction": self.client_instruction,
            "property_info": self.property_info,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Team(db.Model):
    __tablename__ = "teams"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    members = db.relationship(
        "TeamMember", backref="team", lazy="selectin", cascade="all, delete-orphan"
    )

    def to_dict(self, with_members=False):
        out = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if with_members:
            out["members"] = [
                {"staff_id": m.staff_id, "role": m.role} for m in self.members
            ]
        return out


class TeamMember(db.Model):
    __tablename__ = "team_members"

    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False, default="member")  # member / supervisor
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("team_id", "staff_id", name="uq_team_member"),
    )


class Location(db.Model):
    """
    A client site. (unit, name) is the natural key used to dedupe
    locations when shifts are copied forward.

      latitude / longitude   -> optional, from the places lookup
      formatted_address      -> preferred string for route lookups
      last_used_at           -> drives the "recent locations" list
    """

    __tablename__ = "locations"

    id = db.Column(db.Integer, primary_key=True)
    unit = db.Column(db.String(120), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    accuracy = db.Column(db.Integer, nullable=False, default=100)  # percentage
    comment = db.Column(db.Text, nullable=True)
    address = db.Column(db.String(500), nullable=True)

    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    place_id = db.Column(db.String(255), nullable=True)
    formatted_address = db.Column(db.String(500), nullable=True)
    last_used_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("unit", "name", name="uq_location_unit_name"),
    )

    def display_string(self) -> str:
        """Best human/route string: formatted address > address > 'unit name' > name > unit."""
        if self.formatted_address:
            return self.formatted_address
        if self.address:
            return self.address
        if self.unit and self.name:
            return f"{self.unit} {self.name}"
        return self.name or self.unit or ""

    def to_dict(self):
        return {
            "id": self.id,
            "unit": self.unit,
            "name": self.name,
            "accuracy": self.accuracy,
            "comment": self.comment,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "place_id": self.place_id,
            "formatted_address": self.formatted_address,
            "last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
