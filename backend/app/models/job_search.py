from sqlalchemy import Column, Integer, Text
from sqlalchemy.orm import relationship
from app.database import Base


class JobSearch(Base):
    __tablename__ = "job_searches"

    id = Column(Text, primary_key=True)
    search_query = Column(Text, nullable=False, unique=True)
    location = Column(Text)
    date_posted = Column(Text)
    job_type = Column(Text)
    experience_level = Column(Text)
    total_results = Column(Integer, nullable=False, default=0)
    last_updated_at = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    results = relationship("JobSearchResult", back_populates="search", cascade="all, delete-orphan")
