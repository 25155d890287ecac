"""Configuration management for the Idynic core service."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # Sandboxed environments may not expose .env; rely on the process env
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # OpenAI configuration (required)
    OPENAI_API_KEY: str = Field(..., description="OpenAI API key")

    # Environment
    IDYNIC_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Embedding configuration
    EMBEDDING_MODEL: str = Field(
        default="text-embedding-3-small", description="OpenAI embedding model"
    )
    EMBEDDING_DIM: int = Field(default=1536, description="Embedding vector dimension")

    # Evidence -> claim retrieval (synthesis context)
    RAG_SIMILARITY_THRESHOLD: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Min similarity for evidence->claim retrieval"
    )
    RAG_MAX_CLAIMS_PER_QUERY: int = Field(
        default=25, ge=1, description="Max claims returned per evidence query"
    )

    # Requirement matching policy
    MATCH_THRESHOLD: float = Field(
        default=0.4, ge=0.0, le=1.0, description="Min similarity for a claim to satisfy a requirement"
    )
    MATCH_CANDIDATE_COUNT: int = Field(
        default=10, ge=1, description="Nearest neighbours fetched per requirement"
    )
    MATCH_MAX_CANDIDATES_KEPT: int = Field(
        default=3, ge=1, description="Candidates kept per requirement after type filtering"
    )
    MUST_HAVE_WEIGHT: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Weight of the must-have score in the overall score (nice-to-have gets the rest)",
    )

    # Skill cluster projection
    CLUSTER_MIN_EMBEDDINGS: int = Field(
        default=2, ge=2, description="Min claims with embeddings before projecting (PCA needs two)"
    )
    CLUSTER_DBSCAN_EPS: float = Field(
        default=0.12, gt=0.0, description="DBSCAN radius in normalized 0-1 space"
    )
    CLUSTER_DBSCAN_MIN_SAMPLES: int = Field(default=3, ge=1, description="DBSCAN min points")

    # Tailored profile generation
    TALKING_POINTS_MODEL: str = Field(default="gpt-4o-mini", description="Model for talking points")
    NARRATIVE_MODEL: str = Field(default="gpt-4o-mini", description="Model for narrative generation")
    RESUME_MODEL: str = Field(default="gpt-4o-mini", description="Model for resume generation")
    TALKING_POINTS_TEMPERATURE: float = Field(default=0.3, ge=0.0, le=2.0)
    NARRATIVE_TEMPERATURE: float = Field(default=0.7, ge=0.0, le=2.0)
    RESUME_TEMPERATURE: float = Field(default=0.5, ge=0.0, le=2.0)

    # AI-assisted field edits
    REWRITE_MODEL: str = Field(default="gpt-4o-mini", description="Model for instructed rewrites")
    REWRITE_TEMPERATURE: float = Field(default=0.7, ge=0.0, le=2.0)

    # Rate limiting (per caller identity)
    RATE_LIMIT_WINDOW_SECONDS: float = Field(default=60.0, gt=0.0, description="Window length")
    RATE_LIMIT_MAX_REQUESTS: int = Field(default=100, ge=1, description="Requests per window")
    RATE_LIMIT_SWEEP_SECONDS: float = Field(
        default=60.0, gt=0.0, description="Interval between expired-window sweeps"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
