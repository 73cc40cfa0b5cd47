# app/models/api/recommendation_request.py
"""
Recommendation API request models.
Used by routes for input validation and converted into pipeline domain models.
"""

from pydantic import BaseModel, Field

from app.features.recommendations.domain.models import (
    ArticleContext,
    ArticleEntities,
    GeoEntities,
    RecommendOptions,
)


class GeographyRequest(BaseModel):
    """Crisis location as extracted by the article classifier."""

    country: str | None = Field(None, max_length=100, description="Country name or ISO code")
    region: str | None = Field(None, max_length=100, description="Region name, e.g. Middle East")
    city: str | None = Field(None, max_length=100, description="City or sub-national place")


class ClassificationRequest(BaseModel):
    """Classified article the recommendations are generated for."""

    title: str = Field(..., min_length=1, max_length=500, description="Article title")
    description: str | None = Field(None, max_length=5000, description="Article summary")
    content: str | None = Field(None, description="Full article text")
    url: str | None = Field(None, description="Article URL")
    geography: GeographyRequest = Field(default_factory=GeographyRequest)
    disaster_type: str | None = Field(None, max_length=100, description="earthquake, flood, ...")
    affected_group: str | None = Field(None, max_length=100, description="refugees, children, ...")
    causes: list[str] = Field(default_factory=list, description="Cause tags, most relevant first")
    keywords: list[str] = Field(default_factory=list, description="Article keywords")
    identified_needs: list[str] = Field(
        default_factory=list, description="Specific needs, e.g. food, shelter, medical"
    )

    def to_context(self) -> ArticleContext:
        return ArticleContext(
            title=self.title,
            description=self.description,
            content=self.content,
            url=self.url,
            entities=ArticleEntities(
                geography=GeoEntities(
                    country=self.geography.country,
                    region=self.geography.region,
                    city=self.geography.city,
                ),
                disaster_type=self.disaster_type,
                affected_group=self.affected_group,
            ),
            causes=list(self.causes),
            keywords=list(self.keywords),
            identified_needs=list(self.identified_needs),
        )


class RecommendationOptionsRequest(BaseModel):
    """Pipeline options exposed over HTTP."""

    debug: bool = Field(default=False, description="Include pipeline telemetry in the response")
    top_n: int = Field(default=10, ge=1, le=50, description="Number of recommendations (1-50)")
    use_cache: bool = Field(default=True, description="Serve and store cached results")

    def to_options(self) -> RecommendOptions:
        return RecommendOptions(debug=self.debug, top_n=self.top_n, use_cache=self.use_cache)


class RecommendationRequest(BaseModel):
    """Request for nonprofit recommendations for one article."""

    classification: ClassificationRequest
    options: RecommendationOptionsRequest = Field(default_factory=RecommendationOptionsRequest)
