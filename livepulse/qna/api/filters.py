import django_filters

from livepulse.qna.models import Question


class QuestionFilter(django_filters.FilterSet):
    session = django_filters.NumberFilter(field_name="session_id", required=True)
    status = django_filters.MultipleChoiceFilter(choices=Question.Status.choices)
    is_displayed = django_filters.BooleanFilter()
    is_broadcasting = django_filters.BooleanFilter()

    class Meta:
        model = Question
        fields = ["session", "status", "is_displayed", "is_broadcasting"]
