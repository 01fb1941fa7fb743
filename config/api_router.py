from django.conf import settings
from rest_framework.routers import DefaultRouter
from rest_framework.routers import SimpleRouter

from livepulse.live.api.views import LiveSessionViewSet
from livepulse.qna.api.views import AudienceQuestionViewSet
from livepulse.qna.api.views import AudienceSessionViewSet
from livepulse.qna.api.views import QuestionViewSet

router = DefaultRouter() if settings.DEBUG else SimpleRouter()

# Moderator console (authenticated).
router.register("questions", QuestionViewSet, basename="question")
router.register("sessions", LiveSessionViewSet, basename="session")
# Audience view and broadcast screen (anonymous).
router.register(
    "public/sessions",
    AudienceSessionViewSet,
    basename="public-session",
)
router.register(
    "public/questions",
    AudienceQuestionViewSet,
    basename="public-question",
)


app_name = "api"
urlpatterns = router.urls
