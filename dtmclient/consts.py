"""Status, branch-type, result and database-type constants."""

RESULT_FAILURE = "FAILURE"
RESULT_SUCCESS = "SUCCESS"
RESULT_ONGOING = "ONGOING"

DB_TYPE_MYSQL = "mysql"
DB_TYPE_POSTGRES = "postgres"
DB_TYPE_REDIS = "redis"

STATUS_PREPARED = "prepared"
STATUS_SUBMITTED = "submitted"
STATUS_SUCCEED = "succeed"
STATUS_FAILED = "failed"
STATUS_ABORTING = "aborting"

BRANCH_TRY = "try"
BRANCH_CONFIRM = "confirm"
BRANCH_CANCEL = "cancel"
BRANCH_ACTION = "action"
BRANCH_COMPENSATE = "compensate"
BRANCH_COMMIT = "commit"
BRANCH_ROLLBACK = "rollback"

# HTTP bodies a branch returns to report its outcome.
MAP_SUCCESS = {"dtm_result": RESULT_SUCCESS}
MAP_FAILURE = {"dtm_result": RESULT_FAILURE}