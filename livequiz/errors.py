"""Error taxonomy shared by the session services and the transport layers.

Every error carries a machine-readable ``code`` and the HTTP status the
blueprints answer with. ``silent`` errors are expected under network jitter
(late answers, double clicks) and are acknowledged without surfacing a failure.
"""


class QuizError(Exception):
    code = 'quiz_error'
    status_code = 400
    silent = False

    def __init__(self, message=None, **details):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details

    def to_dict(self):
        data = {'error': self.code, 'message': self.message}
        if self.details:
            data['details'] = self.details
        return data


class ValidationError(QuizError):
    code = 'validation_error'
    status_code = 400


class PhaseMismatch(QuizError):
    code = 'phase_mismatch'
    status_code = 409
    silent = True


class NoUsesRemaining(QuizError):
    code = 'no_uses_remaining'
    status_code = 409


class EmptyQuiz(QuizError):
    code = 'empty_quiz'
    status_code = 400


class NoPlayers(QuizError):
    code = 'no_players'
    status_code = 400


class LobbyClosed(QuizError):
    code = 'lobby_closed'
    status_code = 403


class NotSessionHost(QuizError):
    code = 'not_session_host'
    status_code = 403


class SessionClosed(QuizError):
    code = 'session_closed'
    status_code = 410


class SessionNotFound(QuizError):
    code = 'session_not_found'
    status_code = 404


class PlayerNotFound(QuizError):
    code = 'player_not_found'
    status_code = 404


class QuizNotFound(QuizError):
    code = 'quiz_not_found'
    status_code = 404
