"""Azure DevOps pipeline runs, logs and build checks."""