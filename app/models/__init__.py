from app.db.base_class import Base
from app.models.tenant import Store
from app.models.custom_domain import CustomDomain, DomainConnection
from app.models.website import Website, WebsitePage
from app.models.funnel import Funnel, FunnelStep
from app.models.product import Product, PlatformSeoPage
