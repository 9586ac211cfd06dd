"""Constants for the Ramadhan Journal integration."""
DOMAIN = "ramadhanjournal"
PLATFORMS = ["sensor"]

CONF_ENDPOINT = "endpoint"
CONF_LATITUDE = "latitude"
CONF_LONGITUDE = "longitude"
CONF_IMPORT_DELAY = "import_delay"

DEFAULT_LATITUDE = -7.67
DEFAULT_LONGITUDE = 112.54
DEFAULT_IMPORT_DELAY = 1.0

STORAGE_VERSION = 1

# Local collections, each persisted under its own storage key
COLLECTION_PEOPLE = "people"
COLLECTION_CONTENT = "content_items"
COLLECTION_ANNOUNCEMENTS = "announcements"
COLLECTION_SETTINGS = "settings"
COLLECTIONS = [COLLECTION_PEOPLE, COLLECTION_CONTENT, COLLECTION_ANNOUNCEMENTS, COLLECTION_SETTINGS]

# Snapshot field -> local collection
REMOTE_FIELDS = {
    "students": COLLECTION_PEOPLE,
    "materials": COLLECTION_CONTENT,
    "broadcasts": COLLECTION_ANNOUNCEMENTS,
}
REMOTE_SETTINGS_FIELD = "settings"

# Push actions
ACTION_SAVE_PERSON = "saveStudent"
ACTION_DELETE_PERSON = "deleteStudent"
ACTION_SAVE_CONTENT = "saveMaterial"
ACTION_DELETE_CONTENT = "deleteMaterial"
ACTION_SAVE_ANNOUNCEMENT = "saveBroadcast"
ACTION_SAVE_SETTINGS = "saveSettings"

REQUEST_TIMEOUT = 30
PRAYER_TIMES_URL = "https://api.aladhan.com/v1/timings/{timestamp}"
PRAYER_TIMES_METHOD = 20

# Activities
ACTIVITY_SUBUH = "sholatSubuh"
ACTIVITY_ZUHUR = "sholatZuhur"
ACTIVITY_ASAR = "sholatAsar"
ACTIVITY_MAGHRIB = "sholatMaghrib"
ACTIVITY_ISYA = "sholatIsya"
ACTIVITY_FASTING = "puasa"
ACTIVITY_TARAWIH = "tarawih"
ACTIVITY_DHUHA = "dhuha"

PRAYER_ACTIVITIES = [ACTIVITY_SUBUH, ACTIVITY_ZUHUR, ACTIVITY_ASAR, ACTIVITY_MAGHRIB, ACTIVITY_ISYA]
ACTIVITIES = [*PRAYER_ACTIVITIES, ACTIVITY_FASTING, ACTIVITY_TARAWIH, ACTIVITY_DHUHA]
# Cleared and locked while a date is in exempt mode
RESTRICTED_ACTIVITIES = ACTIVITIES

# Activity -> schedule slot that opens its window
PRAYER_SCHEDULE_SLOTS = {
    ACTIVITY_SUBUH: "Fajr",
    ACTIVITY_ZUHUR: "Dhuhr",
    ACTIVITY_ASAR: "Asr",
    ACTIVITY_MAGHRIB: "Maghrib",
    ACTIVITY_ISYA: "Isha",
}
SCHEDULE_SLOTS = ["Imsak", "Fajr", "Dhuhr", "Asr", "Maghrib", "Isha"]

MODE_COMMUNAL = "Jamaah"
MODE_SOLITARY = "Sendiri"
EXECUTION_MODES = [MODE_COMMUNAL, MODE_SOLITARY]
DEFAULT_PLACE = "Rumah"

# Point rules
POINTS_PRAYER_COMMUNAL = 20
POINTS_PRAYER_SOLITARY = 10
POINTS_TARAWIH = 15
POINTS_DHUHA = 10
POINTS_FASTING = 20
POINTS_DEFAULT = 10
POINTS_EXEMPT_CREDIT = 20
POINTS_CONTENT_READ = 5
POINTS_ASSESSMENT = 20
POINTS_KAJIAN = 20
POINTS_TADARUS = 15

# Awards that do not depend on an execution mode
FLAT_AWARDS = {
    ACTIVITY_TARAWIH: POINTS_TARAWIH,
    ACTIVITY_DHUHA: POINTS_DHUHA,
    ACTIVITY_FASTING: POINTS_FASTING,
}

ASSESSMENT_CATEGORY = "quiz"
DEFAULT_CATEGORY = "fiqih"

# Roles
ROLE_STUDENT = "STUDENT"
ROLE_TEACHER = "TEACHER"
ROLE_ADMIN = "ADMIN"
ROLE_GUEST = "GUEST"

CLASSES = [
    "VII A", "VII B", "VII C",
    "VIII A", "VIII B", "VIII C",
    "IX A", "IX B", "IX C",
]
SEED_PEOPLE_PER_CLASS = 5
# Rows carrying this name are the sample line of the import template
IMPORT_TEMPLATE_NAME = "Contoh Siswa"

DEFAULT_SETTINGS = {
    "schoolName": "SMPN 3 Pacet",
    "ramadhanYear": "1446 H",
    "gregorianYear": "2026",
    "loginTitle": "Ramadhan Love",
    "adminPassword": "admin123",
    "teacherPassword": "walas123",
    "copyrightText": "© 2026/1447 H SMPN 3 Pacet",
}

LEADERBOARD_SIZE = 50

# Services
SERVICE_TOGGLE_ACTIVITY = "toggle_activity"
SERVICE_TOGGLE_EXEMPT = "toggle_exempt_mode"
SERVICE_OPEN_CONTENT = "open_content"
SERVICE_CLAIM_ASSESSMENT = "claim_assessment"
SERVICE_LOG_KAJIAN = "log_kajian"
SERVICE_LOG_TADARUS = "log_tadarus"
SERVICE_SAVE_PERSON = "save_person"
SERVICE_DELETE_PERSON = "delete_person"
SERVICE_IMPORT_PEOPLE = "import_people"
SERVICE_SAVE_CONTENT = "save_content"
SERVICE_DELETE_CONTENT = "delete_content"
SERVICE_SAVE_ANNOUNCEMENT = "save_announcement"
SERVICE_SAVE_SETTINGS = "save_settings"

SERVICES = [
    SERVICE_TOGGLE_ACTIVITY,
    SERVICE_TOGGLE_EXEMPT,
    SERVICE_OPEN_CONTENT,
    SERVICE_CLAIM_ASSESSMENT,
    SERVICE_LOG_KAJIAN,
    SERVICE_LOG_TADARUS,
    SERVICE_SAVE_PERSON,
    SERVICE_DELETE_PERSON,
    SERVICE_IMPORT_PEOPLE,
    SERVICE_SAVE_CONTENT,
    SERVICE_DELETE_CONTENT,
    SERVICE_SAVE_ANNOUNCEMENT,
    SERVICE_SAVE_SETTINGS,
]
