from sqlalchemy import Boolean, Column, Text
from sqlalchemy.orm import relationship
from app.database import Base


class CachedJob(Base):
    __tablename__ = "cached_jobs"

    id = Column(Text, primary_key=True)
    job_url = Column(Text, nullable=False, unique=True)
    title = Column(Text, nullable=False)
    company = Column(Text)
    location = Column(Text)
    description = Column(Text)
    salary = Column(Text)
    posted_at = Column(Text)
    source = Column(Text, nullable=False, default="Google Jobs")
    via = Column(Text)
    thumbnail = Column(Text)
    job_type = Column(Text)
    employment_type = Column(Text)
    experience_level = Column(Text)
    remote_type = Column(Text)
    requirements = Column(Text)
    responsibilities = Column(Text)
    benefits = Column(Text)
    is_expired = Column(Boolean, nullable=False, default=False)
    first_seen_at = Column(Text, nullable=False)
    last_seen_at = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    search_links = relationship("JobSearchResult", back_populates="cached_job", cascade="all, delete-orphan")
