from enum import Enum


class AppointmentStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    EXECUTING = 'executing'
    COMPLETED = 'completed'
    CANCELED = 'canceled'
    NO_SHOW = 'no-show'

    @property
    def blocks_slots(self) -> bool:
        return self not in NON_BLOCKING_STATUSES

    @classmethod
    def normalize(cls, raw: 'str | AppointmentStatus | None') -> 'AppointmentStatus':
        """Map stored or submitted status strings (pt/en) to a member.

        A missing status means the booking is still pending. Raises
        ``ValueError`` for anything unrecognised.
        """
        if isinstance(raw, AppointmentStatus):
            return raw
        if raw is None or not raw.strip():
            return cls.PENDING

        key = raw.strip().lower().replace(' ', '_').replace('-', '_')
        try:
            return _STATUS_ALIASES[key]
        except KeyError:
            raise ValueError(f'Unknown appointment status: {raw!r}') from None


NON_BLOCKING_STATUSES = frozenset({AppointmentStatus.CANCELED, AppointmentStatus.NO_SHOW})

_STATUS_ALIASES = {
    'pending': AppointmentStatus.PENDING,
    'pendente': AppointmentStatus.PENDING,
    'confirmed': AppointmentStatus.CONFIRMED,
    'confirmado': AppointmentStatus.CONFIRMED,
    'executing': AppointmentStatus.EXECUTING,
    'in_progress': AppointmentStatus.EXECUTING,
    'executando': AppointmentStatus.EXECUTING,
    'em_execucao': AppointmentStatus.EXECUTING,
    'em_execução': AppointmentStatus.EXECUTING,
    'completed': AppointmentStatus.COMPLETED,
    'concluido': AppointmentStatus.COMPLETED,
    'concluído': AppointmentStatus.COMPLETED,
    'finalizado': AppointmentStatus.COMPLETED,
    'canceled': AppointmentStatus.CANCELED,
    'cancelled': AppointmentStatus.CANCELED,
    'cancelado': AppointmentStatus.CANCELED,
    'no_show': AppointmentStatus.NO_SHOW,
    'noshow': AppointmentStatus.NO_SHOW,
    'nao_compareceu': AppointmentStatus.NO_SHOW,
    'não_compareceu': AppointmentStatus.NO_SHOW,
}
