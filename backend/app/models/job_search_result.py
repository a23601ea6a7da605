from sqlalchemy import Column, Float, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database import Base


class JobSearchResult(Base):
    __tablename__ = "job_search_results"
    __table_args__ = (UniqueConstraint("job_search_id", "cached_job_id"),)

    id = Column(Text, primary_key=True)
    job_search_id = Column(Text, ForeignKey("job_searches.id", ondelete="CASCADE"), nullable=False)
    cached_job_id = Column(Text, ForeignKey("cached_jobs.id", ondelete="CASCADE"), nullable=False)
    relevance_score = Column(Float, nullable=False, default=1)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(Text, nullable=False)

    search = relationship("JobSearch", back_populates="results")
    cached_job = relationship("CachedJob", back_populates="search_links")
