"""
Sysadmin Team Example - Converge the local sysadmin accounts of a host.

Each Sysadmin expands to an account, home directory, shell profile,
authorized_keys, sudoers entry and password lock. Every sysadmin is added to
the root mail alias; those with an email get their own alias as well, and the
notification packages are installed while at least one email is configured.

IMPORTANT: Converging accounts requires root.
  - Preview: sudo sysconverge plan
  - Apply:   sudo sysconverge apply
"""

from sysconverge import Sysadmin
from sysconverge.fragments import Fragment
from sysconverge.resources import PackageSetResource

# Shared shell profile snippets
EDITOR = Fragment(name="editor", order=10, template="export EDITOR={{ editor }}")
HISTORY = Fragment(
    name="history",
    order=20,
    template="export HISTSIZE=10000\nexport HISTTIMEFORMAT='%F %T '",
)

alice = Sysadmin(
    name="alice",
    email="alice@example.org",
    comment="Alice Example",
    groups=["adm"],
    ssh_keys=["ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIExampleKeyAlice alice@laptop"],
    profile_fragments=[EDITOR, HISTORY],
    profile_variables={"editor": "vim"},
)

bob = Sysadmin(
    name="bob",
    email="bob@example.org",
    shell="/bin/zsh",
    ssh_keys=["ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIExampleKeyBob bob@desk"],
    profile_fragments=[EDITOR],
    profile_variables={"editor": "nano"},
)

# On-call account without a mailbox: joins the root alias only
oncall = Sysadmin(name="oncall", sudo_rule="ALL=(ALL:ALL) ALL")

# Former team member: account and sudoers entry are removed, home stays
carol = Sysadmin(name="carol", state="absent")

# Extra tooling every sysadmin expects
admin_tools = PackageSetResource(
    id="packages:admin-tools",
    packages=["vim", "tmux", "htop"],
)
