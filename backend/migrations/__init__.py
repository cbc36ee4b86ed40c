# Firestore -> Supabase Migration
#
# One-off operator tool that copies vehicles, transactions and goals from the
# legacy Firebase project into Supabase, re-keying users by email.
#
# Usage:
#   python -m migrations.runner users
#   python -m migrations.runner migrate
#   python -m migrations.runner migrate --commit
#   python -m migrations.runner admin-report
