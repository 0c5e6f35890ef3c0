from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from .db import Base

# -----------------------------
# ORM models (tables) for the sales dataset
# -----------------------------
class Agent(Base):
    __tablename__ = "agents"
    # A real-estate agent who receives inquiries
    agents_id                  = Column(String, primary_key=True)
    first_name                 = Column(String)
    last_name                  = Column(String)
    email_address              = Column(String, index=True)
    whatsapp_number_supabase   = Column(String)
    years_of_experience        = Column(Integer)
    sign_up_timestamp          = Column(Date)
    sales_team_agency_supabase = Column(String)
    agency_name_supabase       = Column(String)

    inquiries = relationship("Inquiry", back_populates="agent")

    def __repr__(self):
        return f"<Agent(agents_id={self.agents_id}, name={self.first_name} {self.last_name})>"


class Inquiry(Base):
    __tablename__ = "inquiries"
    # A buyer lead on a property, routed to one agent
    inquiry_id         = Column(String, primary_key=True)
    agent_id           = Column(String, ForeignKey("agents.agents_id"), index=True)
    property_id        = Column(String)
    inquiry_created_ts = Column(DateTime(timezone=True), index=True)
    source             = Column(String)      # "PRYPCO One", "Campaign Handover", ...
    status             = Column(String)      # Won / Lost / Pending / New / Contacted
    lost_reason        = Column(String)      # Unresponsive / Not interested / Duplicate ...
    ts_contacted       = Column(DateTime(timezone=True))
    ts_lost_reason     = Column(DateTime(timezone=True))
    ts_won             = Column(DateTime(timezone=True))
    new_viewings       = Column(String)

    agent = relationship("Agent", back_populates="inquiries")

    def __repr__(self):
        return f"<Inquiry(inquiry_id={self.inquiry_id}, status={self.status}, source={self.source})>"


# Column that dates a row, per table: date-range filters and default ordering use it
TIMESTAMP_COLUMNS = {
    "inquiries": "inquiry_created_ts",
    "agents": "sign_up_timestamp",
}

# Embeddable many-to-one relations: (table, embed name) -> (local fk, remote key)
RELATIONS = {
    ("inquiries", "agents"): ("agent_id", "agents_id"),
}
