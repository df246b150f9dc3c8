from interview_coach.db.models.interview import Interview
from interview_coach.db.models.question_answer import QuestionAnswer
from interview_coach.db.models.user import User

__all__ = ["Interview", "QuestionAnswer", "User"]
