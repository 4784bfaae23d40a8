# agencyos/api/v1.py
from fastapi import APIRouter

from agencyos.api.endpoints import auth, status
from agencyos.modules.ai_actions.routers import ai_actions_router
from agencyos.modules.ai_agents.routers import ai_agents_router
from agencyos.modules.ai_credits.routers import ai_credits_router
from agencyos.modules.analytics.routers import analytics_router
from agencyos.modules.automation.routers import automation_router
from agencyos.modules.clients.routers import clients_router
from agencyos.modules.dashboards.routers import dashboards_router
from agencyos.modules.documents.routers import documents_router
from agencyos.modules.finance.routers import finance_router
from agencyos.modules.notifications.routers import notifications_router
from agencyos.modules.organizations.routers import organizations_router
from agencyos.modules.people.routers import people_router
from agencyos.modules.projects.routers import projects_router
from agencyos.modules.roadmaps.routers import roadmaps_router
from agencyos.modules.tasks.routers import tasks_router
from agencyos.modules.whatsapp.routers import whatsapp_router

api_router = APIRouter()

api_router.include_router(status.router)
api_router.include_router(auth.router, prefix="/auth")

api_router.include_router(organizations_router, prefix="/organizations", tags=["Organizations"])
api_router.include_router(people_router, prefix="/users", tags=["Team"])
api_router.include_router(clients_router, prefix="/clients", tags=["Clients"])
api_router.include_router(projects_router, prefix="/projects", tags=["Projects"])
api_router.include_router(tasks_router, prefix="/tasks", tags=["Tasks"])
api_router.include_router(finance_router, prefix="/finance", tags=["Finance"])
api_router.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(automation_router, prefix="/automation", tags=["Automation"])
api_router.include_router(ai_agents_router, prefix="/ai-agents", tags=["AI Agents"])
api_router.include_router(ai_actions_router, prefix="/ai-actions", tags=["AI Actions"])
api_router.include_router(ai_credits_router, prefix="/ai-credits", tags=["AI Credits"])
api_router.include_router(documents_router, prefix="/documents", tags=["Documents"])
api_router.include_router(whatsapp_router, prefix="/whatsapp", tags=["WhatsApp"])
api_router.include_router(roadmaps_router, prefix="/roadmaps", tags=["Roadmaps"])
api_router.include_router(dashboards_router, prefix="/dashboards", tags=["Dashboards"])
api_router.include_router(analytics_router, prefix="/analytics", tags=["Analytics"])
