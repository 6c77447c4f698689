"""
Cluster Inspector - Reads and mutates OpenShift cluster objects through the oc CLI.

This module wraps the oc CLI tool so that the prerequisite checks can read node
resources, storage classes, pods, operators and platform metadata, and create or
delete the single disposable verification Job the credential probe needs.
"""

import json
import re
import subprocess
import sys
from typing import Any, Dict, List, Optional

from loguru import logger

logger.remove()
logger.add(sys.stderr, level="INFO")


class ClusterInspector:
    """Inspects cluster state using the oc CLI tool."""

    # Resources the checks are allowed to read
    READABLE_RESOURCES = {
        "nodes",
        "node",
        "storageclass",
        "pods",
        "pod",
        "secret",
        "job",
        "clusterversion",
        "machineconfig",
        "clusterserviceversion",
        "storagecluster.core.libopenstorage.org",
    }

    # Resources the checks are allowed to delete (probe cleanup only)
    DELETABLE_RESOURCES = {"job", "pods"}

    GET_FLAGS = {
        "-o",
        "-A",
        "-n",
        "--namespace",
        "-l",
        "--selector",
        "--ignore-not-found",
        "--no-headers",
    }
    DELETE_FLAGS = {"-n", "--namespace", "-l", "--selector", "--ignore-not-found", "--wait"}

    def __init__(self, cli_tool: str = "oc", timeout: int = 30):
        """
        Initialize inspector.

        Args:
            cli_tool: Name of the CLI binary (only 'oc' is supported by the checks)
            timeout: Default command timeout in seconds
        """
        self._cli_tool: Optional[str] = None
        self._timeout = timeout
        self._detect_cli_tool(cli_tool)

    @property
    def cli_tool(self) -> Optional[str]:
        return self._cli_tool

    def _detect_cli_tool(self, tool: str) -> None:
        """
        Check that the CLI tool is installed.

        Sets self._cli_tool to the tool name or None.
        """
        try:
            result = subprocess.run(
                [tool, "version", "--client"], capture_output=True, timeout=5, text=True,
                shell=False
            )
            if result.returncode == 0:
                self._cli_tool = tool
                logger.debug(f"Detected CLI tool: {tool}")
                return
        except (FileNotFoundError, subprocess.TimeoutExpired):
            pass

        self._cli_tool = None
        logger.info(f"CLI tool '{tool}' not detected")

    def _validate_flag_value(self, flag_name: str, value: str) -> bool:
        if flag_name in ("-l", "--selector", "-n", "--namespace"):
            return bool(re.match(r"^[a-zA-Z0-9._/=-]+$", value))
        if flag_name == "-o":
            # jsonpath and custom-columns are never needed, everything is read as JSON
            return value in ("json", "name")
        return False

    def _validate_flags(self, args: List[str], valid_flags: set) -> bool:
        i = 0
        while i < len(args):
            arg = args[i]
            if arg.startswith("-"):
                flag_name, _, inline_value = arg.partition("=")
                if flag_name not in valid_flags:
                    logger.error(f"Invalid flag: {flag_name}")
                    return False
                if flag_name in ("--ignore-not-found", "--no-headers", "--wait", "-A"):
                    if inline_value and inline_value not in ("true", "false"):
                        logger.error(f"Invalid flag value: {arg}")
                        return False
                    i += 1
                    continue
                if inline_value:
                    value = inline_value
                    i += 1
                elif i + 1 < len(args):
                    value = args[i + 1]
                    i += 2
                else:
                    logger.error(f"Flag without value: {flag_name}")
                    return False
                if not self._validate_flag_value(flag_name, value):
                    logger.error(f"Invalid value for {flag_name}: {value}")
                    return False
            else:
                # Object names
                if not re.match(r"^[a-zA-Z0-9._/-]+$", arg):
                    logger.error(f"Invalid resource name: {arg}")
                    return False
                i += 1
        return True

    def _validate_command_args(self, args: List[str]) -> bool:
        """
        Validate command arguments to prevent command injection.

        Args:
            args: List of command arguments to validate

        Returns:
            True if arguments are safe, False otherwise
        """
        if not args:
            return False

        if not all(isinstance(arg, str) for arg in args):
            logger.error("All command arguments must be strings")
            return False

        dangerous_patterns = [
            r"[;&|`$()]",
            r"\$\(",
            r"`[^`]*`",
            r"\.\.",
            r"\s",
        ]

        for arg in args:
            for pattern in dangerous_patterns:
                if re.search(pattern, arg):
                    logger.error(f"Dangerous pattern detected in argument: {arg}")
                    return False

        command = args[0]

        if command == "get":
            if len(args) < 2 or args[1] not in self.READABLE_RESOURCES:
                logger.error(f"Invalid resource for get command: {args[1:2]}")
                return False
            return self._validate_flags(args[2:], self.GET_FLAGS)

        if command == "describe":
            if len(args) != 3 or args[1] != "node":
                return False
            return self._validate_flags(args[2:], set())

        if command == "delete":
            if len(args) < 2 or args[1] not in self.DELETABLE_RESOURCES:
                logger.error(f"Invalid resource for delete command: {args[1:2]}")
                return False
            return self._validate_flags(args[2:], self.DELETE_FLAGS)

        if command == "logs":
            if len(args) < 2:
                return False
            return self._validate_flags(args[1:], {"-n", "--namespace"})

        if command == "apply":
            return args[1:] == ["-f", "-"]

        if command in ("whoami", "cluster-info"):
            return len(args) == 1

        if command == "version":
            return all(arg in ("--client",) for arg in args[1:])

        logger.error(f"Command not allowed: {command}")
        return False

    def _execute(
        self, args: List[str], input_text: Optional[str] = None, timeout: Optional[int] = None
    ) -> Optional[subprocess.CompletedProcess]:
        """
        Execute a validated CLI command.

        Returns:
            CompletedProcess or None when the command could not be run
        """
        if not self._cli_tool:
            return None

        if not self._validate_command_args(args):
            logger.error(f"Invalid command arguments detected: {args}")
            return None

        cmd = [self._cli_tool] + args
        logger.debug(f"Executing command: {' '.join(cmd)}")

        try:
            return subprocess.run(
                cmd,
                input=input_text,
                capture_output=True,
                timeout=timeout or self._timeout,
                text=True,
                shell=False
            )
        except subprocess.TimeoutExpired:
            logger.info(f"Command timeout: {' '.join(cmd)}")
            return None
        except OSError as e:
            logger.info(f"Unexpected error running command: {e}")
            return None

    def _run_command(self, args: List[str]) -> Optional[Dict]:
        """
        Execute CLI command and parse JSON output.

        Args:
            args: Command arguments (without the CLI tool name)

        Returns:
            Parsed JSON dict or None on error
        """
        result = self._execute(args)
        if result is None:
            return None

        if result.returncode != 0:
            logger.info(f"Command failed: {self._cli_tool} {' '.join(args)}")
            if result.stderr:
                logger.info(f"Error: {result.stderr.strip()}")
            return None

        if not result.stdout.strip():
            # --ignore-not-found prints nothing when the object is absent
            return None

        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            logger.info(f"JSON parse error: {e}")
            return None

    def _run_text(self, args: List[str]) -> Optional[str]:
        result = self._execute(args)
        if result is None or result.returncode != 0:
            return None
        return result.stdout

    def _namespace_args(self, namespace: Optional[str]) -> List[str]:
        return ["-n", namespace] if namespace else []

    def is_cluster_available(self) -> bool:
        """
        Quick check if the cluster responds and a session is established.

        Returns:
            True if 'oc whoami' succeeds
        """
        result = self._execute(["whoami"], timeout=10)
        return result is not None and result.returncode == 0

    def get_platform_version(self) -> Optional[str]:
        """
        Read the desired OpenShift version.

        Command: oc get clusterversion version -o json
        """
        data = self._run_command(["get", "clusterversion", "version", "-o", "json"])
        if not data:
            return None
        return data.get("status", {}).get("desired", {}).get("version")

    def is_fips_enabled(self) -> bool:
        """Return True if any MachineConfig enables FIPS mode."""
        data = self._run_command(["get", "machineconfig", "-o", "json"])
        if not data:
            return False
        return any(mc.get("spec", {}).get("fips") is True for mc in data.get("items", []))

    def list_nodes(self) -> List[Dict[str, Any]]:
        """
        List all nodes.

        Command: oc get nodes -o json
        """
        data = self._run_command(["get", "nodes", "-o", "json"])
        if not data:
            return []
        return data.get("items", [])

    def describe_node(self, name: str) -> Optional[str]:
        """
        Describe one node. The 'Allocated resources' table is the only place
        the CLI reports the requested CPU and memory of a node.

        Command: oc describe node <name>
        """
        return self._run_text(["describe", "node", name])

    def get_object(
        self, kind: str, name: str, namespace: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Get one object, returning None when it does not exist.

        Command: oc get <kind> <name> [-n ns] --ignore-not-found -o json
        """
        return self._run_command(
            ["get", kind, name] + self._namespace_args(namespace)
            + ["--ignore-not-found", "-o", "json"]
        )

    def list_objects(
        self,
        kind: str,
        namespace: Optional[str] = None,
        all_namespaces: bool = False,
        selector: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        List objects of a kind. A missing resource type yields an empty list.

        Command: oc get <kind> [-n ns | -A] [-l selector] --ignore-not-found -o json
        """
        args = ["get", kind]
        if all_namespaces:
            args.append("-A")
        else:
            args += self._namespace_args(namespace)
        if selector:
            args += ["-l", selector]
        args += ["--ignore-not-found", "-o", "json"]

        data = self._run_command(args)
        if not data:
            return []
        return data.get("items", [])

    def list_pods(
        self, namespace: Optional[str] = None, selector: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        return self.list_objects("pods", namespace=namespace, selector=selector)

    def apply_manifest(self, manifest: str) -> bool:
        """
        Create or update objects from a manifest.

        Command: oc apply -f -  (manifest on stdin)
        """
        result = self._execute(["apply", "-f", "-"], input_text=manifest)
        if result is None:
            return False
        if result.returncode != 0:
            logger.info(f"Apply failed: {result.stderr.strip()}")
            return False
        return True

    def delete_object(self, kind: str, name: str, namespace: Optional[str] = None) -> bool:
        """
        Delete one object. Deleting an absent object counts as success.

        Command: oc delete <kind> <name> [-n ns] --ignore-not-found
        """
        result = self._execute(
            ["delete", kind, name] + self._namespace_args(namespace) + ["--ignore-not-found"]
        )
        return result is not None and result.returncode == 0

    def delete_by_selector(
        self, kind: str, selector: str, namespace: Optional[str] = None
    ) -> bool:
        """
        Command: oc delete <kind> -l <selector> [-n ns] --ignore-not-found
        """
        result = self._execute(
            ["delete", kind, "-l", selector] + self._namespace_args(namespace)
            + ["--ignore-not-found"]
        )
        return result is not None and result.returncode == 0

    def get_pod_logs(self, name: str, namespace: Optional[str] = None) -> Optional[str]:
        """
        Command: oc logs <pod> [-n ns]
        """
        return self._run_text(["logs", name] + self._namespace_args(namespace))

    def list_operators(self) -> List[Dict[str, str]]:
        """
        List installed operators (ClusterServiceVersions) in all namespaces.

        Command: oc get clusterserviceversion -A -o json

        Returns:
            List of {"name", "namespace", "phase"} records
        """
        operators = []
        for csv in self.list_objects("clusterserviceversion", all_namespaces=True):
            metadata = csv.get("metadata", {})
            operators.append(
                {
                    "name": metadata.get("name", ""),
                    "namespace": metadata.get("namespace", ""),
                    "phase": csv.get("status", {}).get("phase", ""),
                }
            )
        return operators
