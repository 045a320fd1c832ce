# storkit

Building blocks for a storage operator that manages objects in a cluster:
config maps, daemon sets, deployments, jobs, CSI drivers, raw devices and
monitoring objects.

Objects are plain dictionaries shaped like their API objects (a `metadata`
mapping with `name`, `labels`, `ownerReferences` and so on). The helpers work
on a *resource collection*: any object with `get(name)`, `list(label_selector)`,
`create(obj)`, `update(obj)`, `update_status(obj)`, `patch(name, patch)` and
`delete(name, options)` that signals failures with the exceptions in
`storkit.errors`. `storkit.client.InMemoryResourceClient` is such a collection,
kept in memory.

## Install

```
pip install storkit
```

For the test suite:

```
pip install "storkit[test]"
pytest
```

## Modules

- `storkit.errors`: `ApiError` and its subclasses `NotFoundError`,
  `AlreadyExistsError`, `ConflictError` and `InvalidError`.
- `storkit.options`: `WaitOptions` and `DeleteOptions` dataclasses (intervals in
  seconds; zero means "use the default"), `base_delete_options()` (no grace
  period, foreground propagation) and `delete_resource()`. `delete_resource()`
  calls a delete function and, when `wait` is set, calls a verify function up to
  `retry_count + 1` times until it raises `NotFoundError`. On timeout it raises
  `TimeoutError` if `error_on_timeout` is set and otherwise logs a warning. A
  missing resource is an error only with `must_delete`.
- `storkit.naming`: `hash_name()`, the first 16 bytes of SHA-256 as hex, and
  `truncate_node_name()`. `truncate_node_name()` fills a `%s` format with a node
  name and uses the hash instead when the result would exceed 63 characters.
- `storkit.pod`: downward-API environment variables (`namespace_env_var()`,
  `name_env_var()`, `node_env_var()`) and container lookup
  (`get_matching_container()`, `get_container_image()`,
  `get_spec_container_image()`). A single container matches any name.
- `storkit.resources`: `OwnerInfo(owner_ref, namespace)` with
  `validate_owner()`, `validate_controller()`, `set_owner_reference()` and
  `set_controller_reference()`. It also has `refer_same_object()`,
  `merge_resource_requirements()` (fills missing cpu and memory limits and
  requests), `set_owner_refs_without_block_owner()`, `ContainerResource` and
  `yaml_to_container_resource()`.
- `storkit.tolerations`: `WELL_KNOWN_TAINTS`, `taint_is_well_known()`,
  `toleration_tolerates_taint()` and `yaml_to_tolerations()`.
- `storkit.node`: `Requirement` and `LabelSelector`, label validation
  (`is_qualified_name()`, `is_valid_label_value()`) and
  `node_selector_requirements_as_selector()`. `node_meets_affinity_terms()`
  ignores preferred terms. `node_is_tolerable()`, `node_is_ready()`,
  `get_node_schedulable()` and `get_not_ready_kubernetes_nodes()` check node
  state. Hostname lookups over a list of nodes are `get_node_name_from_hostname()`,
  `get_node_host_name()`, `get_node_host_name_label()` and
  `get_node_host_names()`. `generate_node_affinity()` parses `key=v1,v2;key2`
  text.
- `storkit.client`: `InMemoryResourceClient` holds the objects of one kind by
  name. It supports label selectors like `app=a,mon!=b`, JSON merge patches and
  an optional status subresource. `update_status()` updates the status and falls
  back to a full update when there is no status subresource.
- `storkit.configmap`: `create_replaceable_configmap()`,
  `create_or_patch_configmap()`, `delete_config_map()`,
  `create_two_way_merge_patch()` and `patch_config_map()`.
  `get_operator_setting()` and `get_value()` read a setting from the config map,
  then the environment, then the default.
- `storkit.workloads`: daemon sets (`create_daemon_set()`, `delete_daemonset()`,
  `get_daemonsets()`, `get_daemonset()`) and deployments (`create_deployment()`,
  `create_or_update_deployment()`, `delete_deployment()`,
  `check_deployment_is_existing()`, `get_deployment_owner_reference()`). It also
  covers CSI drivers (`create_csi_driver()`, `delete_csi_driver()`) and raw
  devices (`create_raw_device()`, `create_or_update_raw_device()`). The delete
  helpers wait for the object to disappear, polling every 2 seconds up to 45
  times.
- `storkit.job`: `run_replaceable_job()`, `wait_for_job_completion()` (timeout
  in seconds, polling every 5 seconds) and `delete_batch_job()`.
- `storkit.monitoring`: `get_service_monitor()` and `get_prometheus_rule()` read
  the first YAML or JSON document of a file. `create_or_update_service_monitor()`
  and `create_or_update_prometheus_rule()` create the object or replace its spec.
- `storkit.predicate`: `ConfigMapPredicate(config_map_name)` decides which events
  on the operator settings config map should trigger a reconcile: creation does,
  and so does an update that changes a `RAW_DEVICE_`, `CSI_` or `KUBELET_` key.
  `config_map_diff()` and `find_csi_change()` back that decision.

## Example

```python
from storkit.node import generate_node_affinity, node_meets_affinity_terms
from storkit.naming import truncate_node_name

affinity = generate_node_affinity("role=storage,db;zone")
node = {"metadata": {"name": "n1", "labels": {"role": "storage", "zone": "a"}}}
assert node_meets_affinity_terms(node, affinity)

print(truncate_node_name("osd-prepare-%s", "k8s01"))  # osd-prepare-k8s01
```

```python
from storkit.client import InMemoryResourceClient
from storkit.options import DeleteOptions
from storkit.configmap import delete_config_map

configmaps = InMemoryResourceClient(kind="ConfigMap")
configmaps.create({"metadata": {"name": "settings", "namespace": "ops"}, "data": {}})
delete_config_map(configmaps, "settings", DeleteOptions(wait=True, error_on_timeout=True))
assert "settings" not in configmaps
```

## What it does not do

- It has no client for a real cluster API server. To manage a live cluster,
  supply your own resource collections with the methods listed above.
- It runs no controller: there is no reconcile loop, no watch on the settings
  config map and no command to start an operator. `ConfigMapPredicate` only
  decides whether an event matters.
- It does not render or deploy the CSI driver workloads themselves. The
  workload helpers take the finished object dictionaries.