# booking_engine/schemas/__init__.py
from .availability import (
    AvailabilityEntryIn,
    WeeklyScheduleRequest,
    DayScheduleRequest,
    BlockIntervalRequest,
    BookingPreferencesUpdate,
    AvailabilityEntryOut,
    BlockedIntervalOut,
    ProviderScheduleOut,
    BookingPreferencesOut,
    AdmissibilityOut,
)

from .booking import (
    TransitionRequest,
    AssignProviderRequest,
    BookingOut,
    AssignmentOut,
    CancellationPolicyOut,
)

from .schedule import (
    DayHours,
    BusinessHoursOut,
    BusinessHoursUpdate,
    DayScheduleView,
    ScheduleView,
    SyncReportOut,
)

from .eligibility import (
    GENERAL_ADDON_BUCKET,
    EligibleService,
    EligibleAddon,
    EligibleServiceSet,
    EligibilityResultOut,
    RemoteEligiblePayload,
)
